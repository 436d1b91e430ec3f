"""
JWT Authorization Lambda for API Gateway.

This module validates Supabase JWT tokens for protected API endpoints and
passes the user's id and email to the handlers in the authorizer context.
"""

from typing import Any, Dict

from services.supabase_auth import supabase_auth
from utils.logging import log_error, setup_logger

# Initialize shared resources at module level for optimal Lambda performance
logger = setup_logger(__name__)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    HTTP API Gateway Lambda Authorizer (simple response format).

    Args:
        event: API Gateway authorizer event
        context: Lambda context object

    Returns:
        Authorization response for API Gateway
    """
    logger.info(
        "Authorization request received",
        extra={
            "request_id": getattr(context, "aws_request_id", "unknown"),
            "method": event.get("requestContext", {}).get("http", {}).get("method"),
            "path": event.get("rawPath"),
        },
    )

    try:
        user_info = supabase_auth.get_user_from_request(event)
        if not user_info or not user_info.get("user_id"):
            logger.warning("Authorization failed: no valid Supabase user in token")
            return {"isAuthorized": False}

        if user_info.get("role") not in (None, "authenticated"):
            logger.warning(
                "Authorization failed: unexpected role",
                extra={"user_id": user_info["user_id"], "role": user_info.get("role")},
            )
            return {"isAuthorized": False}

        logger.info("User authorized", extra={"user_id": user_info["user_id"]})

        return {
            "isAuthorized": True,
            "context": {
                "principalId": user_info["user_id"],
                "user_id": user_info["user_id"],
                "email": user_info.get("email") or "",
            },
        }

    except Exception as e:
        log_error(
            logger,
            e,
            {
                "event_path": event.get("rawPath"),
                "event_method": event.get("requestContext", {})
                .get("http", {})
                .get("method"),
            },
        )
        return {"isAuthorized": False}
