"""
Plaid bank-linking handlers for the $ave+ API.

This module covers the Link flow (link token, public token exchange) and
transaction sync. Access tokens are stored in ``plaid_items`` and never
returned to the client.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from cache.invalidation import MutationType
from cache.query_cache import query_cache
from models.accounts import (ConnectedAccount, PublicTokenExchange,
                             TransactionSyncRequest, utc_now)
from models.transactions import Transaction
from services.categorization import categorize_transactions, parse_rules
from services.plaid_client import plaid_service
from services.roundups import apply_round_ups
from services.supabase_client import supabase
from utils.decorators import (handle_service_errors, lambda_handler,
                              require_auth, validate_json_body)
from utils.responses import HTTPStatus, not_found_response, success_response

logger = logging.getLogger(__name__)

plaid_items = supabase.table("plaid_items")
connected_accounts = supabase.table("connected_accounts")
transactions_table = supabase.table("transactions")


async def _load_sync_settings(user_id: str):
    rules_rows, round_up_rows = await asyncio.gather(
        query_cache.select(
            supabase.table("category_rules"),
            filters={"user_id": user_id, "is_active": True},
            order="priority.desc",
        ),
        query_cache.select(
            supabase.table("automation_rules"),
            filters={"user_id": user_id, "rule_type": "round_up", "is_active": True},
        ),
    )
    return parse_rules(rules_rows), round_up_rows


def _keep_stored_fields(user_id: str, modified: List[Transaction]) -> List[Transaction]:
    """
    Carry the stored category and round-up over to modified transactions.

    Plaid updates (e.g. pending to posted) know nothing about a category the
    user picked or a round-up already saved.
    """
    ids = [t.plaid_transaction_id for t in modified if t.plaid_transaction_id]
    if not ids:
        return modified

    stored = {
        row["plaid_transaction_id"]: row
        for row in transactions_table.select(
            columns="plaid_transaction_id,category,round_up_amount",
            filters={"user_id": user_id, "plaid_transaction_id": ("in", ids)},
        )
    }

    result = []
    for transaction in modified:
        row = stored.get(transaction.plaid_transaction_id) or {}
        update = {}
        if row.get("category"):
            update["category"] = row["category"]
        if row.get("round_up_amount"):
            update["round_up_amount"] = Decimal(str(row["round_up_amount"]))
        result.append(transaction.model_copy(update=update) if update else transaction)
    return result


def _round_up_config(round_up_rows: List[Dict[str, Any]]) -> Optional[Dict[str, Decimal]]:
    """Increment and multiplier of the user's first active round-up rule."""
    if not round_up_rows:
        return None
    action = round_up_rows[0].get("action_config") or {}
    return {
        "increment": Decimal(str(action.get("increment", 1))),
        "multiplier": Decimal(str(action.get("multiplier", 1))),
    }


@lambda_handler()
@require_auth
@handle_service_errors
def create_link_token(event, context):
    """
    Create a Plaid Link token for the authenticated user.

    POST /plaid/link-token
    """
    user_id = event["auth"]["user_id"]
    token = plaid_service.create_link_token(user_id)
    return success_response(data=token)


@lambda_handler()
@require_auth
@validate_json_body(required_fields=["public_token"])
@handle_service_errors
def exchange_public_token(event, context):
    """
    Exchange a Link public token and record the linked accounts.

    POST /plaid/exchange

    Stores the access token in ``plaid_items`` and one ``connected_accounts``
    row per account selected in Link.
    """
    user_id = event["auth"]["user_id"]
    request = PublicTokenExchange(**event["json_body"])

    exchange = plaid_service.exchange_public_token(request.public_token)
    item_id = exchange["item_id"]

    plaid_items.upsert(
        {
            "user_id": user_id,
            "item_id": item_id,
            "access_token": exchange["access_token"],
            "institution_id": request.institution_id,
            "institution_name": request.institution_name,
            "cursor": None,
        },
        on_conflict="item_id",
    )

    accounts = [
        ConnectedAccount.from_link_account(user_id, item_id, request.institution_name, account)
        for account in request.accounts
    ]
    if accounts:
        connected_accounts.upsert(
            [account.to_row() for account in accounts], on_conflict="plaid_account_id"
        )

    logger.info(
        "Linked Plaid item",
        extra={"user_id": user_id, "item_id": item_id, "account_count": len(accounts)},
    )

    return success_response(
        data={
            "item_id": item_id,
            "institution_name": request.institution_name,
            "accounts_linked": len(accounts),
            "invalidate": query_cache.invalidate(MutationType.ACCOUNT_LINK),
        },
        message="Bank account linked successfully",
        status_code=HTTPStatus.CREATED,
    )


@lambda_handler()
@require_auth
@validate_json_body(required_fields=["item_id"])
@handle_service_errors
def sync_transactions(event, context):
    """
    Pull new Plaid transactions for one linked item.

    POST /plaid/sync

    Added and modified transactions are categorized with the user's rules,
    given round-ups when the user has an active round-up rule, and upserted.
    Modified transactions keep the category and round-up already stored.
    Removed transactions are deleted. The sync cursor is saved last so a
    failed run is simply repeated.
    """
    user_id = event["auth"]["user_id"]
    request = TransactionSyncRequest(**event["json_body"])

    item = plaid_items.select_one({"user_id": user_id, "item_id": request.item_id})
    if not item:
        return not_found_response("Plaid item", request.item_id)

    changes = plaid_service.sync_transactions(item["access_token"], item.get("cursor"))

    rules, round_up_rows = asyncio.run(_load_sync_settings(user_id))
    added = [Transaction.from_plaid(user_id, entry) for entry in changes["added"]]
    modified = _keep_stored_fields(
        user_id, [Transaction.from_plaid(user_id, entry) for entry in changes["modified"]]
    )
    incoming = categorize_transactions(added + modified, rules)

    round_up = _round_up_config(round_up_rows)
    if round_up:
        incoming = apply_round_ups(incoming, **round_up, keep_existing=True)

    if incoming:
        transactions_table.upsert(
            [transaction.to_row() for transaction in incoming],
            on_conflict="plaid_transaction_id",
        )
    if changes["removed"]:
        transactions_table.delete(
            {"user_id": user_id, "plaid_transaction_id": ("in", changes["removed"])}
        )

    plaid_items.update(
        {"cursor": changes["next_cursor"]},
        {"user_id": user_id, "item_id": request.item_id},
    )
    connected_accounts.update(
        {"last_synced_at": utc_now().isoformat(), "status": "active"},
        {"user_id": user_id, "plaid_item_id": request.item_id},
    )

    round_up_total = sum((t.round_up_amount for t in incoming), Decimal("0.00"))

    return success_response(
        data={
            "item_id": request.item_id,
            "added": len(changes["added"]),
            "modified": len(changes["modified"]),
            "removed": len(changes["removed"]),
            "round_up_total": round_up_total,
            "invalidate": query_cache.invalidate(MutationType.ACCOUNT_SYNC),
        }
    )
