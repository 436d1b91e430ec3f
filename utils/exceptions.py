"""Exceptions raised by services and mapped to HTTP responses by handlers."""

from typing import Optional


class ServiceError(Exception):
    """Base class for failures talking to Supabase or a third-party API."""


class ConfigurationError(ServiceError):
    """A required API key or URL is not configured."""


class DataClientError(ServiceError):
    """The Supabase REST API rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None, table: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.table = table


class UpstreamAPIError(ServiceError):
    """A third-party API (Plaid, CoinGecko, Alpha Vantage, LLM gateway) failed."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


class RateLimitError(UpstreamAPIError):
    """The upstream API reported that our quota is exhausted."""
