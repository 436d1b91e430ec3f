"""Budget models."""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class Budget(BaseModel):
    """A row of the ``budgets`` table."""

    id: Optional[str] = None
    user_id: Optional[str] = None
    category: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    period: str = Field("monthly", pattern="^(weekly|monthly|yearly)$")


class BudgetPace(BaseModel):
    """Spending pace of one budget within its current period."""

    budget_id: Optional[str] = None
    category: str
    period: str
    period_start: date
    period_end: date
    budget_amount: Decimal
    spent: Decimal
    remaining: Decimal
    elapsed_fraction: float
    expected_spend: Decimal
    pace_ratio: Optional[float] = None
    projected_spend: Decimal
    status: str
