"""
Budget pacing over calendar periods.

Pacing compares what has been spent so far with a straight-line share of
the budget for the elapsed part of the period.
"""

import calendar
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from models.budgets import Budget, BudgetPace

CENT = Decimal("0.01")

UNDER_THRESHOLD = 0.9
OVER_THRESHOLD = 1.1


def period_bounds(period: str, today: date) -> Tuple[date, date]:
    """
    First and last day (inclusive) of the period containing ``today``.

    Weeks start on Monday; months and years are calendar periods.
    """
    if period == "weekly":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if period == "monthly":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last_day)
    if period == "yearly":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    raise ValueError(f"Unknown budget period: {period}")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def pace_status(spent: Decimal, budget_amount: Decimal, pace_ratio: Optional[float]) -> str:
    if spent > budget_amount:
        return "exceeded"
    if pace_ratio is None or pace_ratio < UNDER_THRESHOLD:
        return "under"
    if pace_ratio <= OVER_THRESHOLD:
        return "on_track"
    return "over"


def calculate_pace(budget: Budget, spent: Decimal, today: date) -> BudgetPace:
    """
    Pace of ``budget`` given ``spent`` (a positive amount) as of ``today``.

    ``today`` counts as elapsed, so on the last day of the period the
    elapsed fraction is 1.
    """
    start, end = period_bounds(budget.period, today)
    total_days = (end - start).days + 1
    elapsed_days = min(max((today - start).days + 1, 0), total_days)
    elapsed_fraction = elapsed_days / total_days

    spent = Decimal(spent)
    expected = budget.amount * Decimal(elapsed_fraction)
    pace_ratio = float(spent / expected) if expected > 0 else None
    projected = spent / Decimal(elapsed_fraction) if elapsed_fraction > 0 else spent

    return BudgetPace(
        budget_id=budget.id,
        category=budget.category,
        period=budget.period,
        period_start=start,
        period_end=end,
        budget_amount=budget.amount,
        spent=_money(spent),
        remaining=_money(max(budget.amount - spent, Decimal("0"))),
        elapsed_fraction=round(elapsed_fraction, 4),
        expected_spend=_money(expected),
        pace_ratio=round(pace_ratio, 4) if pace_ratio is not None else None,
        projected_spend=_money(projected),
        status=pace_status(spent, budget.amount, pace_ratio),
    )


def spend_by_category(transactions: Iterable[dict], start: date, end: date) -> Dict[str, Decimal]:
    """Sum outflows per category for ``transactions`` rows dated in [start, end]."""
    totals: Dict[str, Decimal] = {}
    for row in transactions:
        amount = Decimal(str(row.get("amount", 0)))
        if amount >= 0:
            continue
        row_date = row.get("date")
        if isinstance(row_date, str):
            row_date = date.fromisoformat(row_date[:10])
        if row_date is None or not start <= row_date <= end:
            continue
        category = row.get("category") or "Other"
        totals[category] = totals.get(category, Decimal("0")) + (-amount)
    return totals


def calculate_budget_pacing(
    budgets: Iterable[Budget], transactions: List[dict], today: date
) -> List[BudgetPace]:
    """Pace every budget against the transactions inside its own period."""
    paces = []
    for budget in budgets:
        start, end = period_bounds(budget.period, today)
        spent = spend_by_category(transactions, start, end).get(budget.category, Decimal("0"))
        paces.append(calculate_pace(budget, spent, today))
    return paces
