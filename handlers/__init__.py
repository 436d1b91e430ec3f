"""
Handlers package for Lambda function handlers.

This package contains the API endpoint handlers for bank linking, market
data, AI insights, savings goals, budgets and transactions.
"""

from . import budgets, goals, insights, market, plaid, transactions

__all__ = ["budgets", "goals", "insights", "market", "plaid", "transactions"]
