"""
Supabase data client for the $ave+ backend.

This module wraps the Supabase PostgREST and RPC endpoints
with ``requests``. Handlers run with the service role key and scope every
query to the authenticated user explicitly.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Union

import requests

from utils.exceptions import ConfigurationError, DataClientError

# Initialize shared resources at module level so warm starts reuse the
# HTTP connection pool
logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

# PostgREST operators accepted in (operator, value) filter tuples
FILTER_OPERATORS = {"eq", "neq", "gt", "gte", "lt", "lte", "like", "ilike", "is", "in"}
LOGICAL_OPERATORS = ("or", "and")

FilterValue = Union[str, int, float, bool, None, tuple]


def build_filter_params(filters: Optional[Dict[str, FilterValue]]) -> Dict[str, str]:
    """
    Translate a filter dict into PostgREST query parameters.

    Plain values mean equality; ``(operator, value)`` tuples select another
    operator, e.g. ``{"date": ("gte", "2024-01-01")}``. ``in`` takes a list.
    The ``"or"`` and ``"and"`` keys pass a PostgREST condition group through.
    """
    params = {}
    for column, value in (filters or {}).items():
        if column in LOGICAL_OPERATORS:
            # Raw PostgREST group, e.g. "is_custom.eq.false,user_id.eq.<id>"
            params[column] = f"({value})"
            continue
        if isinstance(value, tuple):
            operator, operand = value
            if operator not in FILTER_OPERATORS:
                raise ValueError(f"Unsupported filter operator: {operator}")
        elif value is None:
            operator, operand = "is", "null"
        else:
            operator, operand = "eq", value

        if operator == "in":
            operand = "(" + ",".join(str(item) for item in operand) + ")"
        elif isinstance(operand, bool):
            operand = "true" if operand else "false"

        params[column] = f"{operator}.{operand}"
    return params


class SupabaseClient:
    """Holds Supabase credentials and a shared HTTP session."""

    def __init__(
        self,
        url: Optional[str] = None,
        service_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.url = (url or os.getenv("SUPABASE_URL") or "").rstrip("/")
        self.service_key = service_key or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.session = session or requests.Session()
        self.timeout = timeout

        if not self.url:
            logger.warning("Supabase URL not configured")

    def headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        if not self.url or not self.service_key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")

        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def table(self, name: str) -> "SupabaseTable":
        return SupabaseTable(self, name)

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        table: Optional[str] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (None when empty).

        :raises DataClientError: on network failure or a non-2xx response.
        """
        try:
            response = self.session.request(
                method,
                f"{self.url}{path}",
                params=params,
                json=json,
                headers=self.headers(headers),
                timeout=self.timeout,
            )
        except requests.RequestException as err:
            logger.error("Supabase request to %s failed: %s", path, err)
            raise DataClientError(f"Supabase request failed: {err}", table=table) from err

        if response.status_code >= 400:
            logger.error(
                "Supabase %s %s returned %s: %s",
                method,
                path,
                response.status_code,
                response.text[:500],
            )
            raise DataClientError(
                f"Supabase returned {response.status_code}",
                status_code=response.status_code,
                table=table,
            )

        if not response.content:
            return None
        return response.json()

    def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a Postgres function exposed through ``/rest/v1/rpc``."""
        return self.request("POST", f"/rest/v1/rpc/{function}", json=params or {})


class SupabaseTable:
    """
    Encapsulates PostgREST operations on one table.

    Mirrors the subset of the supabase-js query builder the handlers need.
    """

    def __init__(self, client: SupabaseClient, name: str):
        self.client = client
        self.name = name

    @property
    def path(self) -> str:
        return f"/rest/v1/{self.name}"

    def select(
        self,
        columns: str = "*",
        filters: Optional[Dict[str, FilterValue]] = None,
        order: Optional[str] = None,
        range: Optional[Sequence[int]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch rows.

        :param order: PostgREST order clause, e.g. ``"date.desc"``.
        :param range: inclusive (start, end) row window.
        """
        params = {"select": columns, **build_filter_params(filters)}
        if order:
            params["order"] = order

        headers = None
        if range is not None:
            headers = {"Range-Unit": "items", "Range": f"{range[0]}-{range[1]}"}

        return self.client.request("GET", self.path, params=params, headers=headers, table=self.name) or []

    def select_one(
        self,
        filters: Dict[str, FilterValue],
        columns: str = "*",
        order: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        rows = self.select(columns=columns, filters=filters, order=order, range=(0, 0))
        return rows[0] if rows else None

    def insert(self, rows: Union[Dict[str, Any], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        return self.client.request(
            "POST",
            self.path,
            json=rows,
            headers={"Prefer": "return=representation"},
            table=self.name,
        ) or []

    def upsert(
        self,
        rows: Union[Dict[str, Any], List[Dict[str, Any]]],
        on_conflict: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {"on_conflict": on_conflict} if on_conflict else None
        return self.client.request(
            "POST",
            self.path,
            params=params,
            json=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
            table=self.name,
        ) or []

    def update(
        self, values: Dict[str, Any], filters: Dict[str, FilterValue]
    ) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError("Refusing to update without filters")
        return self.client.request(
            "PATCH",
            self.path,
            params=build_filter_params(filters),
            json=values,
            headers={"Prefer": "return=representation"},
            table=self.name,
        ) or []

    def delete(self, filters: Dict[str, FilterValue]) -> None:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        self.client.request(
            "DELETE", self.path, params=build_filter_params(filters), table=self.name
        )


# Global instance
supabase = SupabaseClient()
