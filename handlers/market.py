"""
Market data handlers: crypto prices, stock quotes and exchange rates.

Each handler proxies one third-party API, keeps results in a container-level
TTL cache and writes the latest values back to Supabase.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from cache.coalescer import RequestCoalescer
from cache.keys import create_global_cache_key
from cache.memory import TTLCache
from models.market import CryptoPriceRequest, PriceQuote, StockQuoteRequest
from services.market_data import (AlphaVantageClient, CoinGeckoClient,
                                  ExchangeRateClient)
from services.supabase_client import supabase
from utils.decorators import (handle_service_errors, lambda_handler,
                              require_auth, validate_json_body)
from utils.responses import success_response, validation_error_response

logger = logging.getLogger(__name__)

CRYPTO_TTL = 60
STOCK_TTL = 60
EXCHANGE_RATE_TTL = 3600

price_cache = TTLCache(max_entries=500, default_ttl=CRYPTO_TTL)
rate_cache = TTLCache(max_entries=50, default_ttl=EXCHANGE_RATE_TTL)
quote_coalescer = RequestCoalescer()

coingecko = CoinGeckoClient()
alpha_vantage = AlphaVantageClient()
exchange_rates_client = ExchangeRateClient()


def _cache_header(cached: int, total: int) -> Dict[str, str]:
    if total and cached == total:
        return {"X-Cache": "HIT"}
    if cached:
        return {"X-Cache": "PARTIAL"}
    return {"X-Cache": "MISS"}


def _quote_rows(quotes: List[PriceQuote]) -> List[dict]:
    return [quote.model_dump(mode="json") for quote in quotes]


@lambda_handler()
@require_auth
@validate_json_body(required_fields=["coin_ids"])
@handle_service_errors
def get_crypto_prices(event, context):
    """
    Get spot prices for crypto assets.

    POST /prices/crypto

    Coins already in the price cache are served from it; the rest are
    fetched from CoinGecko in one call and stored in ``crypto_prices``.
    """
    request = CryptoPriceRequest(**event["json_body"])

    quotes: Dict[str, PriceQuote] = {}
    missing = []
    for coin_id in request.coin_ids:
        cached = price_cache.get(create_global_cache_key("crypto", coin_id, request.vs_currency))
        if cached is not None:
            quotes[coin_id] = cached
        else:
            missing.append(coin_id)

    cached_count = len(quotes)

    if missing:
        fetched = coingecko.get_prices(missing, request.vs_currency)
        for quote in fetched:
            price_cache.set(create_global_cache_key("crypto", quote.symbol, request.vs_currency), quote)
            quotes[quote.symbol] = quote
        if fetched:
            supabase.table("crypto_prices").upsert(_quote_rows(fetched), on_conflict="symbol,currency")

    ordered = [quotes[coin_id] for coin_id in request.coin_ids if coin_id in quotes]
    unknown = [coin_id for coin_id in request.coin_ids if coin_id not in quotes]

    return success_response(
        data={"prices": ordered, "unknown": unknown},
        headers=_cache_header(cached_count, len(request.coin_ids)),
    )


def _cached_stock_quote(symbol: str) -> Optional[PriceQuote]:
    quote, _ = price_cache.get_or_set(
        create_global_cache_key("stock", symbol),
        lambda: alpha_vantage.get_quote(symbol),
        ttl=STOCK_TTL,
    )
    return quote


async def fetch_stock_quotes(symbols: List[str]) -> List[Optional[PriceQuote]]:
    """Look up all symbols concurrently; repeated symbols share one lookup."""
    return await asyncio.gather(
        *(
            quote_coalescer.fetch(
                create_global_cache_key("stock", symbol),
                lambda symbol=symbol: asyncio.to_thread(_cached_stock_quote, symbol),
            )
            for symbol in symbols
        )
    )


@lambda_handler()
@require_auth
@validate_json_body(required_fields=["symbols"])
@handle_service_errors
def get_stock_quotes(event, context):
    """
    Get latest stock quotes from Alpha Vantage.

    POST /prices/stocks
    """
    request = StockQuoteRequest(**event["json_body"])

    results = asyncio.run(fetch_stock_quotes(request.symbols))

    quotes: Dict[str, PriceQuote] = {}
    unknown = []
    for symbol, quote in zip(request.symbols, results):
        if quote is None:
            if symbol not in unknown:
                unknown.append(symbol)
        else:
            quotes[symbol] = quote

    if quotes:
        supabase.table("stock_quotes").upsert(_quote_rows(list(quotes.values())), on_conflict="symbol")

    return success_response(data={"quotes": list(quotes.values()), "unknown": unknown})


@lambda_handler()
@require_auth
@handle_service_errors
def get_exchange_rates(event, context):
    """
    Get exchange rates for a base currency.

    GET /exchange-rates?base=USD
    """
    query = event.get("queryStringParameters") or {}
    base = (query.get("base") or "USD").upper()
    if len(base) != 3 or not base.isalpha():
        return validation_error_response(
            "Invalid base currency", {"base": base}
        )

    snapshot, from_cache = rate_cache.get_or_set(
        create_global_cache_key("fx", base),
        lambda: exchange_rates_client.get_rates(base),
    )

    if not from_cache:
        supabase.table("exchange_rates").upsert(
            snapshot.model_dump(mode="json"), on_conflict="base_currency"
        )

    symbols = query.get("symbols")
    rates = snapshot.rates
    if symbols:
        wanted = {code.strip().upper() for code in symbols.split(",")}
        rates = {code: rate for code, rate in rates.items() if code in wanted}

    return success_response(
        data={
            "base_currency": snapshot.base_currency,
            "rates": rates,
            "provider_updated_at": snapshot.provider_updated_at,
            "fetched_at": snapshot.fetched_at,
        },
        headers={"X-Cache": "HIT" if from_cache else "MISS"},
    )
