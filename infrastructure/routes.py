"""
Lambda functions and HTTP routes of the $ave+ API.

Kept free of Pulumi imports so the table can be checked against the
handler modules in tests.
"""

# name -> handler path, timeout (s), memory (MB)
LAMBDA_FUNCTIONS = {
    "healthz": {"handler": "main.healthz"},
    "plaid-link-token": {"handler": "handlers.plaid.create_link_token"},
    "plaid-exchange": {"handler": "handlers.plaid.exchange_public_token"},
    "plaid-sync": {"handler": "handlers.plaid.sync_transactions", "timeout": 120, "memory": 512},
    "crypto-prices": {"handler": "handlers.market.get_crypto_prices"},
    "stock-quotes": {"handler": "handlers.market.get_stock_quotes", "timeout": 60},
    "exchange-rates": {"handler": "handlers.market.get_exchange_rates"},
    "ai-insights": {"handler": "handlers.insights.generate_insights", "timeout": 60, "memory": 256},
    "ai-category": {"handler": "handlers.insights.suggest_category", "timeout": 45},
    "ai-quota": {"handler": "handlers.insights.get_quota_status"},
    "list-goals": {"handler": "handlers.goals.list_goals"},
    "contribute-to-goal": {"handler": "handlers.goals.contribute_to_goal"},
    "budget-pacing": {"handler": "handlers.budgets.get_budget_pacing"},
    "round-up-summary": {"handler": "handlers.transactions.get_round_up_summary"},
}

AUTHORIZER_HANDLER = "authorizer.lambda_handler"

DEFAULT_TIMEOUT = 30
DEFAULT_MEMORY = 128

# Every route except the health check goes through the Supabase authorizer
ROUTES = [
    ("GET", "/healthz", "healthz", False),
    ("POST", "/plaid/link-token", "plaid-link-token", True),
    ("POST", "/plaid/exchange", "plaid-exchange", True),
    ("POST", "/plaid/sync", "plaid-sync", True),
    ("POST", "/prices/crypto", "crypto-prices", True),
    ("POST", "/prices/stocks", "stock-quotes", True),
    ("GET", "/exchange-rates", "exchange-rates", True),
    ("POST", "/ai/insights", "ai-insights", True),
    ("POST", "/ai/category", "ai-category", True),
    ("GET", "/ai/quota", "ai-quota", True),
    ("GET", "/goals", "list-goals", True),
    ("POST", "/goals/{goal_id}/contributions", "contribute-to-goal", True),
    ("GET", "/budgets/pacing", "budget-pacing", True),
    ("GET", "/transactions/round-ups", "round-up-summary", True),
]


def function_settings(name: str) -> dict:
    """Handler, timeout and memory for one function, with defaults filled in."""
    entry = LAMBDA_FUNCTIONS[name]
    return {
        "handler": entry["handler"],
        "timeout": entry.get("timeout", DEFAULT_TIMEOUT),
        "memory": entry.get("memory", DEFAULT_MEMORY),
    }
