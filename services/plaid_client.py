"""
Plaid integration for bank linking and transaction sync.

Wraps the official ``plaid-python`` client. Configuration comes from
Parameter Store; the API client is built on first use so cold starts of
handlers that never touch Plaid stay cheap.
"""

import logging
from typing import Any, Dict, List, Optional

from plaid.api import plaid_api
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.exceptions import ApiException
from plaid.model.country_code import CountryCode
from plaid.model.item_public_token_exchange_request import \
    ItemPublicTokenExchangeRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import \
    LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transactions_sync_request import TransactionsSyncRequest

from services.parameter_store import config
from utils.exceptions import ConfigurationError, RateLimitError, UpstreamAPIError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Plaid"

PLAID_ENV_HOSTS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}

# Plaid caps a single sync page at 500
SYNC_PAGE_SIZE = 500
MAX_SYNC_PAGES = 20


def _raise_upstream(err: ApiException, action: str):
    logger.error("Plaid %s failed with status %s: %s", action, err.status, err.body)
    if err.status == 429:
        raise RateLimitError(SERVICE_NAME, f"{action} rate limited", err.status) from err
    raise UpstreamAPIError(SERVICE_NAME, f"{action} failed", err.status) from err


class PlaidService:
    """Thin wrapper around the Plaid API calls the handlers use."""

    def __init__(self, client: Optional[plaid_api.PlaidApi] = None, client_name: str = "$ave+"):
        self._client = client
        self.client_name = client_name

    @property
    def client(self) -> plaid_api.PlaidApi:
        if self._client is None:
            plaid_config = config.load_plaid_config()
            environment = plaid_config["environment"]
            if environment not in PLAID_ENV_HOSTS:
                raise ConfigurationError(f"Invalid Plaid environment: {environment}")

            configuration = Configuration(
                host=PLAID_ENV_HOSTS[environment],
                api_key={
                    "clientId": plaid_config["client_id"],
                    "secret": plaid_config["secret"],
                },
            )
            self.client_name = plaid_config["client_name"]
            self._client = plaid_api.PlaidApi(ApiClient(configuration))
        return self._client

    def create_link_token(self, user_id: str) -> Dict[str, Any]:
        """Create a Link token scoped to ``user_id``."""
        request = LinkTokenCreateRequest(
            products=[Products("transactions")],
            client_name=self.client_name,
            country_codes=[CountryCode("US")],
            language="en",
            user=LinkTokenCreateRequestUser(client_user_id=user_id),
        )
        try:
            response = self.client.link_token_create(request)
        except ApiException as err:
            _raise_upstream(err, "link token creation")

        return {"link_token": response.link_token, "expiration": response.expiration}

    def exchange_public_token(self, public_token: str) -> Dict[str, str]:
        """Swap a Link public token for a long-lived access token."""
        try:
            response = self.client.item_public_token_exchange(
                ItemPublicTokenExchangeRequest(public_token=public_token)
            )
        except ApiException as err:
            _raise_upstream(err, "public token exchange")

        return {"access_token": response.access_token, "item_id": response.item_id}

    def sync_transactions(self, access_token: str, cursor: Optional[str] = None) -> Dict[str, Any]:
        """
        Pull every page of changes since ``cursor``.

        Returns added/modified entries as dicts, removed transaction ids and
        the cursor to store for the next sync.
        """
        added: List[Dict[str, Any]] = []
        modified: List[Dict[str, Any]] = []
        removed: List[str] = []

        for _ in range(MAX_SYNC_PAGES):
            kwargs = {"access_token": access_token, "count": SYNC_PAGE_SIZE}
            if cursor:
                kwargs["cursor"] = cursor
            try:
                response = self.client.transactions_sync(TransactionsSyncRequest(**kwargs))
            except ApiException as err:
                _raise_upstream(err, "transactions sync")

            page = response.to_dict()
            added.extend(page.get("added", []))
            modified.extend(page.get("modified", []))
            removed.extend(item["transaction_id"] for item in page.get("removed", []))
            cursor = page.get("next_cursor")

            if not page.get("has_more"):
                break
        else:
            logger.warning("Plaid sync stopped after %d pages", MAX_SYNC_PAGES)

        return {"added": added, "modified": modified, "removed": removed, "next_cursor": cursor}


# Global instance
plaid_service = PlaidService()
