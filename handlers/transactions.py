"""
Transaction handlers.
"""

import asyncio
import logging
from datetime import date

from cache.query_cache import query_cache
from models.transactions import RoundUpQuery, Transaction
from services.roundups import summarize_round_ups
from services.supabase_client import supabase
from utils.decorators import handle_service_errors, lambda_handler, require_auth
from utils.responses import success_response, validation_error_response

logger = logging.getLogger(__name__)


@lambda_handler()
@require_auth
@handle_service_errors
def get_round_up_summary(event, context):
    """
    Summarise the spare change that round-ups would save.

    GET /transactions/round-ups?start_date=&end_date=&increment=&multiplier=

    The window defaults to the current calendar month.
    """
    user_id = event["auth"]["user_id"]
    query = RoundUpQuery(**(event.get("queryStringParameters") or {}))

    today = date.today()
    start = query.start_date or today.replace(day=1)
    end = query.end_date or today
    if start > end:
        return validation_error_response(
            "start_date must not be after end_date",
            {"start_date": start, "end_date": end},
        )

    rows = asyncio.run(
        query_cache.select(
            supabase.table("transactions"),
            filters={
                "user_id": user_id,
                "and": f"date.gte.{start.isoformat()},date.lte.{end.isoformat()}",
                "amount": ("lt", 0),
            },
            order="date.desc",
        )
    )
    transactions = [Transaction(**row) for row in rows]

    summary = summarize_round_ups(transactions, query.increment, query.multiplier)

    return success_response(
        data={
            **summary,
            "start_date": start,
            "end_date": end,
            "increment": query.increment,
            "multiplier": query.multiplier,
        }
    )
