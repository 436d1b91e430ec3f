"""Market data models for crypto prices, stock quotes and exchange rates."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import pydantic
from pydantic import BaseModel, Field


def _normalise_list(values: List[str], upper: bool, dedupe: bool = True) -> List[str]:
    cleaned = []
    for value in values:
        value = value.strip()
        value = value.upper() if upper else value.lower()
        if value and (not dedupe or value not in cleaned):
            cleaned.append(value)
    if not cleaned:
        raise ValueError("At least one value is required")
    return cleaned


class CryptoPriceRequest(BaseModel):
    coin_ids: List[str] = Field(..., min_length=1, max_length=50)
    vs_currency: str = Field("usd", min_length=3, max_length=5)

    @pydantic.field_validator("coin_ids")
    def normalise_coin_ids(cls, v):
        return _normalise_list(v, upper=False)

    @pydantic.field_validator("vs_currency")
    def lower_currency(cls, v):
        return v.lower()


class StockQuoteRequest(BaseModel):
    symbols: List[str] = Field(..., min_length=1, max_length=10)

    @pydantic.field_validator("symbols")
    def normalise_symbols(cls, v):
        # duplicates are kept; concurrent lookups of one symbol share a request
        return _normalise_list(v, upper=True, dedupe=False)


class PriceQuote(BaseModel):
    """A single price, shaped for the ``crypto_prices`` table and API output."""

    symbol: str
    price: Decimal
    currency: str = "usd"
    change_24h: Optional[Decimal] = None
    source: str
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ExchangeRateSnapshot(BaseModel):
    """Rates for one base currency, shaped for the ``exchange_rates`` table."""

    base_currency: str
    rates: Dict[str, Decimal]
    provider_updated_at: Optional[str] = None
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
