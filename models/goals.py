"""Savings goal models."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class Goal(BaseModel):
    """A row of the ``goals`` table."""

    id: str
    user_id: str
    name: str
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Decimal("0")
    deadline: Optional[date] = None
    currency: Optional[str] = None

    @field_validator("current_amount", mode="before")
    @classmethod
    def null_amount_is_zero(cls, v):
        return Decimal("0") if v is None else v

    @property
    def is_completed(self) -> bool:
        return self.current_amount >= self.target_amount

    @property
    def remaining(self) -> Decimal:
        return max(self.target_amount - self.current_amount, Decimal("0"))

    @property
    def progress(self) -> float:
        """Fraction of the target reached, capped at 1."""
        return float(min(self.current_amount / self.target_amount, Decimal("1")))

    def to_summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "target_amount": float(self.target_amount),
            "current_amount": float(self.current_amount),
            "remaining": float(self.remaining),
            "progress": round(self.progress, 4),
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "is_completed": self.is_completed,
        }


class GoalContributionCreate(BaseModel):
    """Request body for adding money to a goal."""

    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    note: Optional[str] = Field(None, max_length=280)
    source: str = Field("manual", pattern="^(manual|round_up|automation)$")


class GoalContribution(BaseModel):
    """A row of the ``goal_contributions`` table."""

    goal_id: str
    user_id: str
    amount: Decimal
    note: Optional[str] = None
    source: str = "manual"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
