"""
Services package for business logic and external integrations.

This package contains the Supabase data and auth clients, the Plaid, market
data and LLM API clients, and the pure finance computations the handlers use.
"""

from .llm_gateway import llm_gateway
from .parameter_store import config
from .plaid_client import plaid_service
from .supabase_auth import supabase_auth
from .supabase_client import supabase

__all__ = [
    "config",
    "llm_gateway",
    "plaid_service",
    "supabase",
    "supabase_auth",
]
