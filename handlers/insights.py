"""
AI-assisted handlers: spending insights, category suggestions and quota status.

Model calls go through the LLM gateway. Category suggestions try the user's
own rules and previously cached suggestions before asking the model.
"""

import asyncio
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from cache.query_cache import query_cache
from models.accounts import utc_now
from models.insights import (CategorySuggestion, CategorySuggestRequest,
                             InsightRequest, amount_range)
from services.categorization import match_category, parse_rules
from services.llm_gateway import llm_gateway
from services.supabase_client import supabase
from utils.decorators import (handle_service_errors, lambda_handler,
                              require_auth, validate_json_body)
from utils.responses import HTTPStatus, success_response

logger = logging.getLogger(__name__)

CACHED_SUGGESTION_MIN_CONFIDENCE = 0.7
TOP_MERCHANTS = 10
QUOTA_STALE_TIME = 15

# One single-row state table per model provider
QUOTA_TABLES = {
    "groq": "groq_quota_state",
    "deepseek": "deepseek_quota_state",
    "grok": "grok_quota_state",
}

INSIGHTS_SYSTEM_PROMPT = (
    "You are a personal finance coach for a savings app. Given a summary of "
    "the user's recent spending, reply with 3 to 5 short, specific insights "
    "and one concrete saving tip. Use plain language and the user's currency."
)

ai_insights = supabase.table("ai_insights")
category_suggestions = supabase.table("category_suggestions")


def summarize_spending(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Totals of outflows and inflows, with spend per category and merchant."""
    spent = Decimal("0")
    income = Decimal("0")
    by_category: Dict[str, Decimal] = {}
    by_merchant: Dict[str, Decimal] = {}

    for row in rows:
        amount = Decimal(str(row.get("amount", 0)))
        if amount >= 0:
            income += amount
            continue
        outflow = -amount
        spent += outflow
        category = row.get("category") or "Other"
        by_category[category] = by_category.get(category, Decimal("0")) + outflow
        merchant = row.get("merchant_name")
        if merchant:
            by_merchant[merchant] = by_merchant.get(merchant, Decimal("0")) + outflow

    top_merchants = sorted(by_merchant.items(), key=lambda item: item[1], reverse=True)
    return {
        "transaction_count": len(rows),
        "total_spent": spent,
        "total_income": income,
        "by_category": dict(sorted(by_category.items(), key=lambda item: item[1], reverse=True)),
        "top_merchants": dict(top_merchants[:TOP_MERCHANTS]),
    }


def _summary_prompt(summary: Dict[str, Any], days: int, focus) -> str:
    lines = [
        f"Period: last {days} days",
        f"Transactions: {summary['transaction_count']}",
        f"Total spent: {summary['total_spent']:.2f}",
        f"Total income: {summary['total_income']:.2f}",
        "Spending by category:",
    ]
    lines += [f"- {category}: {amount:.2f}" for category, amount in summary["by_category"].items()]
    if summary["top_merchants"]:
        lines.append("Top merchants:")
        lines += [f"- {merchant}: {amount:.2f}" for merchant, amount in summary["top_merchants"].items()]
    if focus:
        lines.append(f"The user wants to focus on: {focus}")
    return "\n".join(lines)


@lambda_handler()
@require_auth
@validate_json_body()
@handle_service_errors
def generate_insights(event, context):
    """
    Generate spending insights for the authenticated user.

    POST /ai/insights
    """
    user_id = event["auth"]["user_id"]
    request = InsightRequest(**event["json_body"])

    since = date.today() - timedelta(days=request.days)
    rows = asyncio.run(
        query_cache.select(
            supabase.table("transactions"),
            filters={"user_id": user_id, "date": ("gte", since.isoformat())},
            order="date.desc",
        )
    )
    summary = summarize_spending(rows)

    if not rows:
        return success_response(
            data={"insights": None, "summary": summary},
            message="Not enough transactions to generate insights",
        )

    completion = llm_gateway.chat(
        [
            {"role": "system", "content": INSIGHTS_SYSTEM_PROMPT},
            {"role": "user", "content": _summary_prompt(summary, request.days, request.focus)},
        ]
    )

    ai_insights.insert(
        {
            "user_id": user_id,
            "insight_type": "spending_summary",
            "content": completion["content"],
            "model": completion["model"],
            "period_days": request.days,
            "created_at": utc_now().isoformat(),
        }
    )

    logger.info(
        "Generated insights",
        extra={"user_id": user_id, "latency_ms": completion["latency_ms"]},
    )

    return success_response(
        data={
            "insights": completion["content"],
            "summary": summary,
            "model": completion["model"],
        },
        status_code=HTTPStatus.CREATED,
    )


def _available_categories(user_id: str) -> List[Dict[str, Any]]:
    return asyncio.run(
        query_cache.select(
            supabase.table("budget_categories"),
            filters={"or": f"is_custom.eq.false,user_id.eq.{user_id}"},
            order="is_custom.asc",
            columns="code,name",
        )
    )


def _suggest_with_model(request: CategorySuggestRequest, categories: List[Dict[str, Any]]) -> CategorySuggestion:
    category_list = "\n".join(f"- {c['code']}: {c['name']}" for c in categories)
    result = llm_gateway.chat_json(
        [
            {
                "role": "system",
                "content": (
                    "You are a financial categorization expert. Based on merchant name, "
                    "amount and description, suggest the most appropriate budget category.\n\n"
                    f"Available categories:\n{category_list}\n\n"
                    'Return only a JSON object: {"category": "CODE", "confidence": 0.0-1.0, '
                    '"reasoning": "brief reason"}'
                ),
            },
            {
                "role": "user",
                "content": (
                    f"Merchant: {request.merchant_name}\n"
                    f"Amount: {request.amount}\n"
                    f"Description: {request.description or 'N/A'}"
                ),
            },
        ],
        max_tokens=150,
        temperature=0.1,
    )
    data = result["data"]
    return CategorySuggestion(
        category=data.get("category") or data.get("categoryCode") or "Other",
        confidence=min(max(float(data.get("confidence", 0)), 0.0), 1.0),
        reasoning=data.get("reasoning"),
        source="model",
    )


@lambda_handler()
@require_auth
@validate_json_body(required_fields=["merchant_name", "amount"])
@handle_service_errors
def suggest_category(event, context):
    """
    Suggest a budget category for a transaction.

    POST /ai/category

    Order of precedence: the user's category rules, a cached suggestion for
    the merchant with confidence above 0.7, then the model. Model answers
    are stored in ``category_suggestions`` for next time.
    """
    user_id = event["auth"]["user_id"]
    request = CategorySuggestRequest(**event["json_body"])

    rules = parse_rules(
        asyncio.run(
            query_cache.select(
                supabase.table("category_rules"),
                filters={"user_id": user_id, "is_active": True},
                order="priority.desc",
            )
        )
    )
    ruled = match_category(rules, request.merchant_name, request.description)
    if ruled:
        suggestion = CategorySuggestion(category=ruled, confidence=1.0, source="rules")
        return success_response(data=suggestion.model_dump())

    cached = category_suggestions.select_one(
        {"user_id": user_id, "merchant_name": ("ilike", f"%{request.merchant_name}%")},
        order="times_used.desc",
    )
    if cached and float(cached.get("confidence_score") or 0) > CACHED_SUGGESTION_MIN_CONFIDENCE:
        category_suggestions.update(
            {"times_used": int(cached.get("times_used") or 0) + 1},
            {"id": cached["id"]},
        )
        suggestion = CategorySuggestion(
            category=cached["suggested_category_code"],
            confidence=float(cached["confidence_score"]),
            source="cache",
        )
        return success_response(data=suggestion.model_dump())

    suggestion = _suggest_with_model(request, _available_categories(user_id))

    category_suggestions.insert(
        {
            "user_id": user_id,
            "merchant_name": request.merchant_name,
            "amount_range": amount_range(request.amount),
            "suggested_category_code": suggestion.category,
            "confidence_score": suggestion.confidence,
            "times_used": 1,
        }
    )

    return success_response(data=suggestion.model_dump())


async def _load_quota_rows() -> List[List[Dict[str, Any]]]:
    return await asyncio.gather(
        *(
            query_cache.select(supabase.table(table), range=(0, 0), stale_time=QUOTA_STALE_TIME)
            for table in QUOTA_TABLES.values()
        )
    )


def quota_summary(provider: str, row: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Display shape for one provider; a missing row means no usage recorded yet."""
    if not row:
        return {"provider": provider, "circuit_state": "closed", "recorded": False}
    return {
        "provider": provider,
        "recorded": True,
        "requests_remaining": row.get("requests_remaining_rpd"),
        "requests_limit": row.get("requests_limit_rpd"),
        "tokens_remaining": row.get("tokens_remaining_tpm"),
        "tokens_limit": row.get("tokens_limit_tpm"),
        "avg_latency_ms": row.get("avg_latency_ms"),
        "circuit_state": row.get("circuit_state") or "closed",
        "updated_at": row.get("updated_at"),
    }


@lambda_handler()
@require_auth
@handle_service_errors
def get_quota_status(event, context):
    """
    Show the current quota and circuit state of each model provider.

    GET /ai/quota

    The state rows are maintained by the provider rate limiters; this
    endpoint only reads them.
    """
    results = asyncio.run(_load_quota_rows())
    providers = [
        quota_summary(provider, rows[0] if rows else None)
        for provider, rows in zip(QUOTA_TABLES, results)
    ]
    return success_response(data={"providers": providers})
