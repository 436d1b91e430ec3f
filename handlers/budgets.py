"""
Budget handlers.
"""

import asyncio
import logging
from datetime import date

from cache.query_cache import query_cache
from models.budgets import Budget
from services.budget_pacing import calculate_budget_pacing, period_bounds
from services.supabase_client import supabase
from utils.decorators import handle_service_errors, lambda_handler, require_auth
from utils.responses import success_response

logger = logging.getLogger(__name__)


async def _load_budgets(user_id: str):
    return await query_cache.select(
        supabase.table("budgets"), filters={"user_id": user_id}, order="category.asc"
    )


async def _load_spending(user_id: str, since: date):
    return await query_cache.select(
        supabase.table("transactions"),
        filters={"user_id": user_id, "date": ("gte", since.isoformat())},
        columns="amount,date,category",
    )


@lambda_handler()
@require_auth
@handle_service_errors
def get_budget_pacing(event, context):
    """
    Report how each budget is pacing through its current period.

    GET /budgets/pacing

    Transactions are loaded once, starting from the earliest period start
    among the user's budgets.
    """
    user_id = event["auth"]["user_id"]
    today = date.today()

    budgets = [Budget(**row) for row in asyncio.run(_load_budgets(user_id))]
    if not budgets:
        return success_response(data={"budgets": [], "as_of": today})

    since = min(period_bounds(budget.period, today)[0] for budget in budgets)
    transactions = asyncio.run(_load_spending(user_id, since))

    paces = calculate_budget_pacing(budgets, transactions, today)
    attention = [pace.category for pace in paces if pace.status in ("over", "exceeded")]

    return success_response(
        data={"budgets": paces, "needs_attention": attention, "as_of": today}
    )
