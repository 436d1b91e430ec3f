"""
Decorators for Lambda function handlers.

This module provides decorators that add consistent logging, error handling,
CORS preflight handling and request parsing to Lambda functions.
"""

import json
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from cache.query_cache import query_cache

from .exceptions import (ConfigurationError, DataClientError, RateLimitError,
                         UpstreamAPIError)
from .logging import (get_http_method, log_error, log_lambda_event,
                      log_lambda_response, setup_logger)
from .responses import (HTTPStatus, create_response, error_response,
                        rate_limited_response, upstream_error_response,
                        validation_error_response)


def lambda_handler(
    logger_name: Optional[str] = None,
    log_event: bool = True,
    log_response: bool = True,
    structured_logging: bool = True,
) -> Callable:
    """
    Decorator for Lambda function handlers that provides:
    - Consistent logging setup
    - Automatic event/response logging
    - CORS preflight (OPTIONS) answers
    - A query cache scoped to the invocation
    - Error handling and response formatting
    - Execution time tracking

    Args:
        logger_name: Logger name (defaults to function module name)
        log_event: Whether to log incoming events
        log_response: Whether to log responses
        structured_logging: Whether to use structured JSON logging

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            logger = setup_logger(
                logger_name or func.__module__, structured=structured_logging
            )

            start_time = time.time()

            if get_http_method(event) == "OPTIONS":
                return create_response(HTTPStatus.NO_CONTENT)

            # Rows may have changed since a previous invocation in this container
            query_cache.clear()

            try:
                if log_event:
                    log_lambda_event(logger, event, context)

                response = func(event, context)

                if not isinstance(response, dict) or "statusCode" not in response:
                    logger.warning("Handler returned invalid response format")
                    response = error_response(
                        "Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR
                    )

                if log_response:
                    execution_time = (time.time() - start_time) * 1000
                    log_lambda_response(logger, response, execution_time)

                return response

            except Exception as e:
                execution_time = (time.time() - start_time) * 1000

                log_error(
                    logger,
                    e,
                    {
                        "function_name": getattr(context, "function_name", "unknown"),
                        "request_id": getattr(context, "aws_request_id", "unknown"),
                        "execution_time_ms": execution_time,
                        "event_path": event.get("path") or event.get("rawPath"),
                        "event_method": get_http_method(event),
                    },
                )

                return error_response(
                    "Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR
                )

        return wrapper

    return decorator


def require_auth(func: Callable) -> Callable:
    """
    Decorator that ensures the request is authenticated.

    This decorator checks for the authorization context set by the
    API Gateway Lambda authorizer and exposes it as ``event["auth"]``.
    """

    @wraps(func)
    def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        # HTTP API puts the context under authorizer.lambda, REST API directly
        request_context = event.get("requestContext", {})
        authorizer_context = request_context.get("authorizer") or {}
        auth_context = authorizer_context.get("lambda", authorizer_context)

        if not auth_context or not auth_context.get("user_id"):
            logger = setup_logger(__name__)
            logger.info(
                "Authorization failed - no valid context found",
                extra={
                    "request_context_keys": list(request_context.keys()),
                    "authorizer_keys": list(authorizer_context.keys()),
                },
            )
            return error_response("Unauthorized access", HTTPStatus.UNAUTHORIZED)

        event["auth"] = {
            "user_id": auth_context.get("user_id"),
            "email": auth_context.get("email"),
        }

        return func(event, context)

    return wrapper


def validate_json_body(required_fields: Optional[list] = None) -> Callable:
    """
    Decorator that validates and parses JSON request body.

    Args:
        required_fields: List of required field names

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            body_str = event.get("body") or "{}"

            try:
                body = json.loads(body_str)
            except json.JSONDecodeError as e:
                return validation_error_response(
                    "Invalid JSON in request body", {"json_error": str(e)}
                )

            if not isinstance(body, dict):
                return validation_error_response("Request body must be a JSON object")

            event["json_body"] = body

            if required_fields:
                missing_fields = [
                    field
                    for field in required_fields
                    if field not in body or body[field] is None
                ]

                if missing_fields:
                    return validation_error_response(
                        f"Missing required fields: {', '.join(missing_fields)}",
                        {"missing_fields": missing_fields},
                    )

            return func(event, context)

        return wrapper

    return decorator


def extract_path_params(*param_names: str) -> Callable:
    """
    Decorator that extracts and validates path parameters.

    Args:
        param_names: Names of path parameters to extract

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            path_params = event.get("pathParameters") or {}

            missing_params = [
                param
                for param in param_names
                if param not in path_params or not path_params[param]
            ]

            if missing_params:
                return validation_error_response(
                    f"Missing path parameters: {', '.join(missing_params)}",
                    {"missing_parameters": missing_params},
                )

            event["path_params"] = {param: path_params[param] for param in param_names}

            return func(event, context)

        return wrapper

    return decorator


def handle_service_errors(func: Callable) -> Callable:
    """
    Decorator that turns service exceptions into API responses.

    Validation errors become 400, exhausted upstream quotas 429, other
    upstream failures 502. Missing configuration and Supabase failures are
    reported as a generic 500 so no internals leak to the client.
    """

    @wraps(func)
    def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        logger = setup_logger(func.__module__)
        try:
            return func(event, context)
        except ValidationError as e:
            return validation_error_response(
                "Request validation failed",
                {"validation_errors": e.errors(include_url=False, include_context=False)},
            )
        except RateLimitError as e:
            logger.warning("Upstream rate limit hit", extra={"service": e.service})
            return rate_limited_response(e.service)
        except UpstreamAPIError as e:
            log_error(logger, e, {"service": e.service, "upstream_status": e.status_code})
            return upstream_error_response(e.service)
        except (ConfigurationError, DataClientError) as e:
            log_error(logger, e)
            return error_response(
                "Internal server error", HTTPStatus.INTERNAL_SERVER_ERROR
            )

    return wrapper
