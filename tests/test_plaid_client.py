"""Tests for the Plaid service wrapper."""

from unittest.mock import MagicMock

import pytest
from plaid.exceptions import ApiException

from services.plaid_client import MAX_SYNC_PAGES, PlaidService
from utils.exceptions import ConfigurationError, RateLimitError, UpstreamAPIError


def sync_page(added=(), modified=(), removed=(), next_cursor="c1", has_more=False):
    page = MagicMock()
    page.to_dict.return_value = {
        "added": list(added),
        "modified": list(modified),
        "removed": [{"transaction_id": tid} for tid in removed],
        "next_cursor": next_cursor,
        "has_more": has_more,
    }
    return page


@pytest.fixture
def plaid_api():
    return MagicMock()


@pytest.fixture
def service(plaid_api):
    return PlaidService(client=plaid_api)


class TestLinkFlow:
    def test_create_link_token(self, service, plaid_api):
        plaid_api.link_token_create.return_value = MagicMock(
            link_token="link-sandbox-123", expiration="2024-04-01T00:00:00Z"
        )

        token = service.create_link_token("user-1")

        assert token == {"link_token": "link-sandbox-123", "expiration": "2024-04-01T00:00:00Z"}
        request = plaid_api.link_token_create.call_args.args[0]
        assert request.user.client_user_id == "user-1"

    def test_exchange_public_token(self, service, plaid_api):
        plaid_api.item_public_token_exchange.return_value = MagicMock(
            access_token="access-sandbox-1", item_id="item-1"
        )

        assert service.exchange_public_token("public-sandbox-1") == {
            "access_token": "access-sandbox-1",
            "item_id": "item-1",
        }

    def test_rate_limited_api_error(self, service, plaid_api):
        plaid_api.link_token_create.side_effect = ApiException(status=429, reason="Too Many Requests")

        with pytest.raises(RateLimitError):
            service.create_link_token("user-1")

    def test_other_api_errors_are_upstream_errors(self, service, plaid_api):
        plaid_api.item_public_token_exchange.side_effect = ApiException(status=400, reason="Bad Request")

        with pytest.raises(UpstreamAPIError) as exc_info:
            service.exchange_public_token("bad")
        assert exc_info.value.status_code == 400


class TestSyncTransactions:
    def test_follows_pages_until_has_more_is_false(self, service, plaid_api):
        plaid_api.transactions_sync.side_effect = [
            sync_page(added=[{"transaction_id": "t1"}], next_cursor="c1", has_more=True),
            sync_page(modified=[{"transaction_id": "t2"}], removed=["t0"], next_cursor="c2"),
        ]

        result = service.sync_transactions("access-1")

        assert [t["transaction_id"] for t in result["added"]] == ["t1"]
        assert [t["transaction_id"] for t in result["modified"]] == ["t2"]
        assert result["removed"] == ["t0"]
        assert result["next_cursor"] == "c2"
        second_request = plaid_api.transactions_sync.call_args_list[1].args[0]
        assert second_request.cursor == "c1"

    def test_stops_after_page_limit(self, service, plaid_api):
        plaid_api.transactions_sync.return_value = sync_page(has_more=True)

        service.sync_transactions("access-1", cursor="c0")

        assert plaid_api.transactions_sync.call_count == MAX_SYNC_PAGES


class TestClientConfiguration:
    def test_invalid_environment(self, monkeypatch):
        monkeypatch.setattr(
            "services.plaid_client.config.load_plaid_config",
            lambda: {"client_id": "id", "secret": "s", "environment": "staging", "client_name": "$ave+"},
        )

        with pytest.raises(ConfigurationError):
            PlaidService().client
