"""
Utils package for shared utilities and cross-cutting concerns.

This package contains decorators, logging utilities, response formatters
and the exception types shared by services and handlers.
"""

from .decorators import (extract_path_params, handle_service_errors,
                         lambda_handler, require_auth, validate_json_body)
from .exceptions import (ConfigurationError, DataClientError, RateLimitError,
                         ServiceError, UpstreamAPIError)
from .logging import (log_error, log_lambda_event, log_lambda_response,
                      setup_logger)
from .responses import (HTTPStatus, error_response, not_found_response,
                        success_response, validation_error_response)

__all__ = [
    # Decorators
    "lambda_handler",
    "require_auth",
    "validate_json_body",
    "extract_path_params",
    "handle_service_errors",
    # Exceptions
    "ServiceError",
    "ConfigurationError",
    "DataClientError",
    "UpstreamAPIError",
    "RateLimitError",
    # Logging
    "setup_logger",
    "log_lambda_event",
    "log_lambda_response",
    "log_error",
    # Responses
    "HTTPStatus",
    "success_response",
    "error_response",
    "validation_error_response",
    "not_found_response",
]
