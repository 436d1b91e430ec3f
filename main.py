"""
Health check endpoint for the $ave+ API.

This module provides a simple health check endpoint that can be used
for monitoring and load balancer health checks.
"""

from cache.query_cache import query_cache
from utils.decorators import lambda_handler
from utils.responses import success_response

SERVICE_NAME = "saveplus-api"
VERSION = "1.0.0"


@lambda_handler()
def healthz(event, context):
    """
    Health check endpoint for the $ave+ API.

    Returns a simple success response to indicate the service is running,
    along with the query cache counters of this container. This endpoint
    does not require authentication.

    Args:
        event: Lambda event object
        context: Lambda context object

    Returns:
        HTTP response indicating service health
    """
    return success_response(
        data={
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": VERSION,
            "cache": query_cache.stats(),
        },
        message="Service is running",
    )
