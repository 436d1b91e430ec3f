"""Round-up savings calculations."""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List

from models.transactions import Transaction

CENT = Decimal("0.01")


def calculate_round_up(
    amount: Decimal, increment: Decimal = Decimal("1"), multiplier: Decimal = Decimal("1")
) -> Decimal:
    """
    Spare change from rounding a purchase up to the next ``increment``.

    Only outflows (negative amounts) round up. An amount that is already a
    whole multiple of ``increment`` gives nothing.

    >>> calculate_round_up(Decimal("-4.35"))
    Decimal('0.65')
    """
    amount = Decimal(amount)
    increment = Decimal(increment)
    multiplier = Decimal(multiplier)

    if increment <= 0:
        raise ValueError("increment must be positive")
    if multiplier <= 0:
        raise ValueError("multiplier must be positive")
    if amount >= 0:
        return Decimal("0.00")

    spent = -amount
    rounded = (spent / increment).to_integral_value(rounding=ROUND_CEILING) * increment
    return ((rounded - spent) * multiplier).quantize(CENT, rounding=ROUND_HALF_UP)


def apply_round_ups(
    transactions: Iterable[Transaction],
    increment: Decimal = Decimal("1"),
    multiplier: Decimal = Decimal("1"),
    keep_existing: bool = False,
) -> List[Transaction]:
    """
    Return copies of settled transactions with ``round_up_amount`` set.

    With ``keep_existing``, a transaction that already carries a round-up
    is passed through unchanged.
    """
    result = []
    for transaction in transactions:
        if keep_existing and transaction.round_up_amount:
            result.append(transaction)
            continue
        if transaction.pending:
            round_up = Decimal("0.00")
        else:
            round_up = calculate_round_up(transaction.amount, increment, multiplier)
        result.append(transaction.model_copy(update={"round_up_amount": round_up}))
    return result


def summarize_round_ups(
    transactions: Iterable[Transaction],
    increment: Decimal = Decimal("1"),
    multiplier: Decimal = Decimal("1"),
) -> Dict[str, Any]:
    """Total spare change across transactions, broken down by category."""
    total = Decimal("0.00")
    count = 0
    by_category: Dict[str, Decimal] = {}

    for transaction in transactions:
        if transaction.pending:
            continue
        round_up = calculate_round_up(transaction.amount, increment, multiplier)
        if round_up == 0:
            continue
        total += round_up
        count += 1
        category = transaction.category or "Other"
        by_category[category] = by_category.get(category, Decimal("0.00")) + round_up

    return {
        "total": total,
        "transaction_count": count,
        "average": (total / count).quantize(CENT, rounding=ROUND_HALF_UP) if count else Decimal("0.00"),
        "by_category": by_category,
    }
