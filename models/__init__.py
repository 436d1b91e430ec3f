"""
Models package for request bodies and Supabase rows.

This package contains Pydantic models for request validation and for the
rows handlers write back to Supabase tables.
"""

from .accounts import ConnectedAccount, PublicTokenExchange
from .budgets import Budget, BudgetPace
from .goals import Goal, GoalContribution, GoalContributionCreate
from .insights import CategorySuggestion, CategorySuggestRequest, InsightRequest
from .market import ExchangeRateSnapshot, PriceQuote
from .transactions import CategoryRule, Transaction

__all__ = [
    "Budget",
    "BudgetPace",
    "CategoryRule",
    "CategorySuggestion",
    "CategorySuggestRequest",
    "ConnectedAccount",
    "ExchangeRateSnapshot",
    "Goal",
    "GoalContribution",
    "GoalContributionCreate",
    "InsightRequest",
    "PriceQuote",
    "PublicTokenExchange",
    "Transaction",
]
