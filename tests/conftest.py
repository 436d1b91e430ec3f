"""
Shared fixtures for the $ave+ API tests.

No test talks to Supabase, Plaid, market data APIs or the LLM gateway;
handlers get in-memory table doubles and service mocks instead.
"""

import json
import os
from unittest.mock import MagicMock

import pytest

# Set before any service module reads its configuration at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

USER_ID = "6f1c2d4e-0000-4000-8000-000000000001"


def make_table(name, rows=None):
    """A ``SupabaseTable`` double whose ``select`` returns ``rows``."""
    table = MagicMock(name=f"{name}_table")
    table.name = name
    table.select.return_value = list(rows or [])
    table.select_one.return_value = None
    table.insert.side_effect = lambda data: data if isinstance(data, list) else [data]
    table.upsert.side_effect = lambda data, on_conflict=None: data if isinstance(data, list) else [data]
    table.update.return_value = []
    return table


class FakeSupabase:
    """Stands in for the module-level ``supabase`` client in handlers."""

    def __init__(self):
        self.tables = {}
        self.rpc = MagicMock(return_value=None)

    def table(self, name):
        if name not in self.tables:
            self.tables[name] = make_table(name)
        return self.tables[name]

    def with_rows(self, name, rows):
        self.table(name).select.return_value = list(rows)
        return self.tables[name]


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture(autouse=True)
def reset_query_cache():
    from cache.query_cache import query_cache

    query_cache.clear()
    yield
    query_cache.clear()


@pytest.fixture
def lambda_context():
    context = MagicMock()
    context.function_name = "saveplus-test"
    context.function_version = "$LATEST"
    context.aws_request_id = "req-123"
    context.get_remaining_time_in_millis.return_value = 30000
    return context


@pytest.fixture
def make_event():
    """Build an HTTP API (payload v2) proxy event."""

    def _make_event(
        method="GET",
        path="/",
        body=None,
        query=None,
        path_params=None,
        user_id=USER_ID,
        email="saver@example.com",
    ):
        event = {
            "rawPath": path,
            "headers": {"content-type": "application/json"},
            "requestContext": {"http": {"method": method, "sourceIp": "127.0.0.1"}},
            "queryStringParameters": query,
            "pathParameters": path_params,
            "body": json.dumps(body) if isinstance(body, (dict, list)) else body,
        }
        if user_id:
            event["requestContext"]["authorizer"] = {
                "lambda": {"user_id": user_id, "email": email}
            }
        return event

    return _make_event


def response_body(response):
    return json.loads(response["body"])
