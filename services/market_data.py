"""
Market data clients for CoinGecko, Alpha Vantage and the exchange-rate API.

Each client makes one HTTP call per method and returns validated models.
Failures are raised as ``UpstreamAPIError`` and exhausted quotas as
``RateLimitError``; nothing is retried.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import requests

from models.market import ExchangeRateSnapshot, PriceQuote
from services.parameter_store import config
from utils.exceptions import RateLimitError, UpstreamAPIError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


def _get_json(
    session: requests.Session,
    service: str,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    try:
        response = session.get(url, params=params, headers=headers, timeout=DEFAULT_TIMEOUT)
    except requests.RequestException as err:
        logger.error("%s request failed: %s", service, err)
        raise UpstreamAPIError(service, "request failed") from err

    if response.status_code == 429:
        raise RateLimitError(service, "rate limited", 429)
    if response.status_code >= 400:
        logger.error("%s returned %s: %s", service, response.status_code, response.text[:300])
        raise UpstreamAPIError(service, f"HTTP {response.status_code}", response.status_code)

    try:
        return response.json()
    except ValueError as err:
        raise UpstreamAPIError(service, "invalid JSON response") from err


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value).rstrip("%"))
    except InvalidOperation:
        return None


class CoinGeckoClient:
    SERVICE = "CoinGecko"
    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(self, session: Optional[requests.Session] = None, api_key: Optional[str] = None):
        self.session = session or requests.Session()
        self._api_key = api_key

    @property
    def api_key(self) -> Optional[str]:
        # Optional demo key; the public endpoint works without one
        if self._api_key is None:
            self._api_key = config.get("coingecko/api-key", "")
        return self._api_key or None

    def get_prices(self, coin_ids: List[str], vs_currency: str = "usd") -> List[PriceQuote]:
        """Spot price and 24h change for each coin id CoinGecko recognises."""
        headers = {"x-cg-demo-api-key": self.api_key} if self.api_key else None
        data = _get_json(
            self.session,
            self.SERVICE,
            f"{self.BASE_URL}/simple/price",
            params={
                "ids": ",".join(coin_ids),
                "vs_currencies": vs_currency,
                "include_24hr_change": "true",
            },
            headers=headers,
        )

        quotes = []
        for coin_id in coin_ids:
            entry = data.get(coin_id)
            if not entry or vs_currency not in entry:
                logger.info("CoinGecko returned no price", extra={"coin_id": coin_id})
                continue
            quotes.append(
                PriceQuote(
                    symbol=coin_id,
                    price=_decimal(entry[vs_currency]),
                    currency=vs_currency,
                    change_24h=_decimal(entry.get(f"{vs_currency}_24h_change")),
                    source="coingecko",
                )
            )
        return quotes


class AlphaVantageClient:
    SERVICE = "Alpha Vantage"
    BASE_URL = "https://www.alphavantage.co/query"

    def __init__(self, session: Optional[requests.Session] = None, api_key: Optional[str] = None):
        self.session = session or requests.Session()
        self._api_key = api_key

    @property
    def api_key(self) -> str:
        if self._api_key is None:
            self._api_key = config.get_required("alpha-vantage/api-key")
        return self._api_key

    def get_quote(self, symbol: str) -> Optional[PriceQuote]:
        """
        Latest quote for ``symbol`` or None if the symbol is unknown.

        Alpha Vantage reports quota exhaustion with HTTP 200 and a ``Note``
        or ``Information`` field instead of a quote.
        """
        data = _get_json(
            self.session,
            self.SERVICE,
            self.BASE_URL,
            params={"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key},
        )

        if "Note" in data or "Information" in data:
            raise RateLimitError(self.SERVICE, data.get("Note") or data.get("Information"))
        if "Error Message" in data:
            raise UpstreamAPIError(self.SERVICE, data["Error Message"])

        quote = data.get("Global Quote") or {}
        price = _decimal(quote.get("05. price"))
        if price is None:
            return None

        return PriceQuote(
            symbol=quote.get("01. symbol", symbol),
            price=price,
            currency="usd",
            change_24h=_decimal(quote.get("10. change percent")),
            source="alphavantage",
        )


class ExchangeRateClient:
    SERVICE = "ExchangeRate-API"
    BASE_URL = "https://open.er-api.com/v6/latest"

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def get_rates(self, base_currency: str) -> ExchangeRateSnapshot:
        data = _get_json(self.session, self.SERVICE, f"{self.BASE_URL}/{base_currency.upper()}")

        if data.get("result") != "success":
            raise UpstreamAPIError(self.SERVICE, data.get("error-type", "lookup failed"))

        return ExchangeRateSnapshot(
            base_currency=data.get("base_code", base_currency.upper()),
            rates={code: _decimal(rate) for code, rate in data.get("rates", {}).items()},
            provider_updated_at=data.get("time_last_update_utc"),
        )
