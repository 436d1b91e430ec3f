"""Tests for the market data handlers."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

import handlers.market as market_handlers
from conftest import response_body
from models.market import ExchangeRateSnapshot, PriceQuote
from utils.exceptions import UpstreamAPIError


def quote(symbol, price, source="coingecko"):
    return PriceQuote(symbol=symbol, price=Decimal(price), source=source)


@pytest.fixture
def market(monkeypatch, fake_supabase):
    clients = MagicMock()
    monkeypatch.setattr(market_handlers, "supabase", fake_supabase)
    monkeypatch.setattr(market_handlers, "coingecko", clients.coingecko)
    monkeypatch.setattr(market_handlers, "alpha_vantage", clients.alpha_vantage)
    monkeypatch.setattr(market_handlers, "exchange_rates_client", clients.exchange_rates)
    market_handlers.price_cache.clear()
    market_handlers.rate_cache.clear()
    yield clients
    market_handlers.price_cache.clear()
    market_handlers.rate_cache.clear()


class TestCryptoPrices:
    def test_fetches_only_uncached_coins(self, market, fake_supabase, make_event, lambda_context):
        market.coingecko.get_prices.return_value = [quote("bitcoin", "65000")]
        first = market_handlers.get_crypto_prices(
            make_event("POST", body={"coin_ids": ["Bitcoin"]}), lambda_context
        )
        assert first["headers"]["X-Cache"] == "MISS"

        market.coingecko.get_prices.return_value = [quote("ethereum", "3500")]
        second = market_handlers.get_crypto_prices(
            make_event("POST", body={"coin_ids": ["bitcoin", "ethereum", "dogecoin"]}), lambda_context
        )

        payload = response_body(second)
        assert second["headers"]["X-Cache"] == "PARTIAL"
        assert [p["symbol"] for p in payload["prices"]] == ["bitcoin", "ethereum"]
        assert payload["unknown"] == ["dogecoin"]
        market.coingecko.get_prices.assert_called_with(["ethereum", "dogecoin"], "usd")
        assert fake_supabase.table("crypto_prices").upsert.call_count == 2

    def test_all_cached(self, market, make_event, lambda_context):
        market.coingecko.get_prices.return_value = [quote("bitcoin", "65000")]
        event = make_event("POST", body={"coin_ids": ["bitcoin"]})

        market_handlers.get_crypto_prices(event, lambda_context)
        response = market_handlers.get_crypto_prices(make_event("POST", body={"coin_ids": ["bitcoin"]}), lambda_context)

        assert response["headers"]["X-Cache"] == "HIT"
        market.coingecko.get_prices.assert_called_once()

    def test_upstream_failure(self, market, make_event, lambda_context):
        market.coingecko.get_prices.side_effect = UpstreamAPIError("CoinGecko", "down", 503)

        response = market_handlers.get_crypto_prices(
            make_event("POST", body={"coin_ids": ["bitcoin"]}), lambda_context
        )

        assert response["statusCode"] == 502


class TestStockQuotes:
    def test_duplicate_symbols_share_one_lookup(self, market, fake_supabase, make_event, lambda_context):
        market.alpha_vantage.get_quote.side_effect = lambda symbol: (
            None if symbol == "NOPE" else quote(symbol, "190.5", source="alpha_vantage")
        )

        response = market_handlers.get_stock_quotes(
            make_event("POST", body={"symbols": ["aapl", "AAPL", "nope"]}), lambda_context
        )

        payload = response_body(response)
        assert [q["symbol"] for q in payload["quotes"]] == ["AAPL"]
        assert payload["unknown"] == ["NOPE"]
        assert market.alpha_vantage.get_quote.call_count == 2
        fake_supabase.table("stock_quotes").upsert.assert_called_once()

    def test_too_many_symbols(self, market, make_event, lambda_context):
        symbols = [f"S{i}" for i in range(11)]

        response = market_handlers.get_stock_quotes(make_event("POST", body={"symbols": symbols}), lambda_context)

        assert response["statusCode"] == 400


class TestExchangeRates:
    def test_fetch_then_cache(self, market, fake_supabase, make_event, lambda_context):
        market.exchange_rates.get_rates.return_value = ExchangeRateSnapshot(
            base_currency="EUR", rates={"USD": Decimal("1.08"), "GBP": Decimal("0.85"), "JPY": Decimal("160")}
        )

        first = market_handlers.get_exchange_rates(
            make_event(query={"base": "eur", "symbols": "usd, gbp"}), lambda_context
        )
        second = market_handlers.get_exchange_rates(make_event(query={"base": "EUR"}), lambda_context)

        assert first["headers"]["X-Cache"] == "MISS"
        assert response_body(first)["rates"] == {"USD": 1.08, "GBP": 0.85}
        assert second["headers"]["X-Cache"] == "HIT"
        assert len(response_body(second)["rates"]) == 3
        market.exchange_rates.get_rates.assert_called_once_with("EUR")
        fake_supabase.table("exchange_rates").upsert.assert_called_once()

    def test_invalid_base(self, market, make_event, lambda_context):
        response = market_handlers.get_exchange_rates(make_event(query={"base": "EURO"}), lambda_context)

        assert response["statusCode"] == 400
        market.exchange_rates.get_rates.assert_not_called()
