"""AI insight and category suggestion models."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class InsightRequest(BaseModel):
    days: int = Field(90, ge=7, le=365)
    focus: Optional[str] = Field(None, max_length=200)


class CategorySuggestRequest(BaseModel):
    merchant_name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal
    description: Optional[str] = Field(None, max_length=500)


class CategorySuggestion(BaseModel):
    category: str
    confidence: float = Field(..., ge=0, le=1)
    reasoning: Optional[str] = None
    source: str


def amount_range(amount: Decimal) -> str:
    """Bucket used to key cached category suggestions."""
    value = abs(amount)
    if value < 50:
        return "low"
    if value < 200:
        return "medium"
    return "high"
