"""Transaction and category-rule models."""

import re
import datetime as dt
from decimal import Decimal
from typing import Any, Dict, Optional

import pydantic
from pydantic import BaseModel, Field


class Transaction(BaseModel):
    """
    A row of the ``transactions`` table.

    Amounts follow the app convention: negative is money out, positive is
    money in. Plaid reports the opposite sign, see ``from_plaid``.
    """

    user_id: str
    account_id: Optional[str] = None
    plaid_transaction_id: Optional[str] = None
    amount: Decimal
    date: dt.date
    merchant_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    plaid_category: Optional[str] = None
    round_up_amount: Decimal = Decimal("0")
    pending: bool = False
    currency: str = "USD"

    @pydantic.field_validator("round_up_amount", "pending", "currency", mode="before")
    def nulls_take_default(cls, v, info):
        if v is None:
            return cls.model_fields[info.field_name].default
        return v

    @classmethod
    def from_plaid(cls, user_id: str, item: Dict[str, Any]) -> "Transaction":
        """Create a Transaction from a Plaid ``/transactions/sync`` entry."""
        finance_category = item.get("personal_finance_category") or {}
        legacy_category = item.get("category") or []

        return cls(
            user_id=user_id,
            account_id=item.get("account_id"),
            plaid_transaction_id=item.get("transaction_id"),
            amount=-Decimal(str(item.get("amount", 0))),
            date=item.get("date"),
            merchant_name=item.get("merchant_name"),
            description=item.get("name"),
            plaid_category=finance_category.get("primary")
            or (legacy_category[0] if legacy_category else None),
            pending=bool(item.get("pending", False)),
            currency=item.get("iso_currency_code") or "USD",
        )

    @property
    def is_outflow(self) -> bool:
        return self.amount < 0

    def to_row(self) -> Dict[str, Any]:
        """Serialise for a PostgREST insert/upsert."""
        return self.model_dump(mode="json")


class CategoryRule(BaseModel):
    """User-defined pattern that assigns a category to matching transactions."""

    id: Optional[str] = None
    pattern: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    match_type: str = Field("contains", pattern="^(contains|starts_with|exact|regex)$")
    match_field: str = Field("merchant", pattern="^(merchant|description|any)$")
    priority: int = 0
    is_active: bool = True

    @pydantic.field_validator("pattern")
    def pattern_must_not_be_blank(cls, v):
        if not v.strip():
            raise ValueError("Pattern must not be blank")
        return v

    @pydantic.model_validator(mode="after")
    def validate_regex(self):
        """Reject regex rules that do not compile."""
        if self.match_type == "regex":
            try:
                re.compile(self.pattern)
            except re.error as e:
                raise ValueError(f"Invalid regular expression: {e}")
        return self


class RoundUpQuery(BaseModel):
    """Query parameters for the round-up summary endpoint."""

    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    increment: Decimal = Field(Decimal("1"), gt=0)
    multiplier: Decimal = Field(Decimal("1"), gt=0, le=10)
