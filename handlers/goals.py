"""
Savings goal handlers.
"""

import asyncio
import logging
from decimal import Decimal
from typing import List

from cache.invalidation import MutationType
from cache.query_cache import query_cache
from models.goals import Goal, GoalContribution, GoalContributionCreate
from services.supabase_client import supabase
from utils.decorators import (extract_path_params, handle_service_errors,
                              lambda_handler, require_auth,
                              validate_json_body)
from utils.responses import HTTPStatus, not_found_response, success_response

logger = logging.getLogger(__name__)

goals_table = supabase.table("goals")


def parse_goals(rows) -> List[Goal]:
    """Build goals from ``goals`` rows, skipping ones without a usable target."""
    goals = []
    for row in rows:
        try:
            goals.append(Goal(**row))
        except ValueError as e:
            logger.warning(f"Ignoring invalid goal {row.get('id')}: {e}")
    return goals


@lambda_handler()
@require_auth
@handle_service_errors
def list_goals(event, context):
    """
    List the authenticated user's savings goals with progress.

    GET /goals
    """
    user_id = event["auth"]["user_id"]

    rows = asyncio.run(
        query_cache.select(goals_table, filters={"user_id": user_id}, order="created_at.desc")
    )
    goals = parse_goals(rows)

    total_target = sum((goal.target_amount for goal in goals), Decimal("0"))
    total_saved = sum((goal.current_amount for goal in goals), Decimal("0"))

    return success_response(
        data={
            "goals": [goal.to_summary() for goal in goals],
            "count": len(goals),
            "total_target": total_target,
            "total_saved": total_saved,
        }
    )


@lambda_handler()
@require_auth
@extract_path_params("goal_id")
@validate_json_body(required_fields=["amount"])
@handle_service_errors
def contribute_to_goal(event, context):
    """
    Add money to a savings goal.

    POST /goals/{goal_id}/contributions

    The ``contribute_to_goal`` database function records the contribution
    and updates the goal balance in one transaction.
    """
    user_id = event["auth"]["user_id"]
    goal_id = event["path_params"]["goal_id"]
    request = GoalContributionCreate(**event["json_body"])

    goal_row = goals_table.select_one({"id": goal_id, "user_id": user_id})
    if not goal_row:
        return not_found_response("Goal", goal_id)

    contribution = GoalContribution(
        goal_id=goal_id,
        user_id=user_id,
        amount=request.amount,
        note=request.note,
        source=request.source,
    )

    result = supabase.rpc(
        "contribute_to_goal",
        {
            "p_goal_id": goal_id,
            "p_user_id": user_id,
            "p_amount": float(contribution.amount),
            "p_note": contribution.note or f"{contribution.source} contribution",
        },
    )
    outcome = (result[0] if isinstance(result, list) and result else result) or {}

    goal = Goal(**goal_row)
    new_amount = Decimal(str(outcome.get("new_amount", goal.current_amount + contribution.amount)))
    updated = goal.model_copy(update={"current_amount": new_amount})

    logger.info(
        "Goal contribution recorded",
        extra={"user_id": user_id, "goal_id": goal_id, "completed": updated.is_completed},
    )

    return success_response(
        data={
            "contribution": contribution,
            "goal": updated.to_summary(),
            "invalidate": query_cache.invalidate(MutationType.GOAL_CONTRIBUTE),
        },
        message="Goal completed!" if updated.is_completed else "Contribution added",
        status_code=HTTPStatus.CREATED,
    )
