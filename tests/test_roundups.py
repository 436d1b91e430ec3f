"""Tests for round-up savings calculations."""

from datetime import date
from decimal import Decimal

import pytest

from models.transactions import Transaction
from services.roundups import (apply_round_ups, calculate_round_up,
                               summarize_round_ups)


def transaction(amount, category=None, pending=False):
    return Transaction(
        user_id="u",
        amount=Decimal(amount),
        date=date(2024, 3, 1),
        category=category,
        pending=pending,
    )


class TestCalculateRoundUp:
    @pytest.mark.parametrize(
        "amount,increment,multiplier,expected",
        [
            ("-4.35", "1", "1", "0.65"),
            ("-4.35", "5", "1", "0.65"),
            ("-4.35", "1", "2", "1.30"),
            ("-12.01", "10", "1", "7.99"),
            ("-0.01", "1", "1", "0.99"),
            ("-3.335", "1", "1", "0.67"),
        ],
    )
    def test_rounds_outflows_up(self, amount, increment, multiplier, expected):
        result = calculate_round_up(Decimal(amount), Decimal(increment), Decimal(multiplier))

        assert result == Decimal(expected)

    @pytest.mark.parametrize("amount", ["-5.00", "-10", "0", "25.40"])
    def test_whole_amounts_and_inflows_give_nothing(self, amount):
        assert calculate_round_up(Decimal(amount)) == Decimal("0.00")

    @pytest.mark.parametrize("increment,multiplier", [("0", "1"), ("-1", "1"), ("1", "0")])
    def test_rejects_non_positive_settings(self, increment, multiplier):
        with pytest.raises(ValueError):
            calculate_round_up(Decimal("-1.50"), Decimal(increment), Decimal(multiplier))


class TestApplyRoundUps:
    def test_pending_transactions_get_no_round_up(self):
        result = apply_round_ups([transaction("-4.35"), transaction("-4.35", pending=True)])

        assert [t.round_up_amount for t in result] == [Decimal("0.65"), Decimal("0.00")]

    def test_keep_existing_leaves_stored_round_ups(self):
        stored = transaction("-4.35").model_copy(update={"round_up_amount": Decimal("1.30")})

        result = apply_round_ups([stored, transaction("-2.10")], keep_existing=True)

        assert [t.round_up_amount for t in result] == [Decimal("1.30"), Decimal("0.90")]


class TestSummarizeRoundUps:
    def test_totals_by_category(self):
        summary = summarize_round_ups(
            [
                transaction("-4.35", "Coffee"),
                transaction("-2.80", "Coffee"),
                transaction("-19.50", "Groceries"),
                transaction("-20.00", "Groceries"),
                transaction("1500.00", "Income"),
                transaction("-3.10", "Coffee", pending=True),
            ]
        )

        assert summary["total"] == Decimal("1.35")
        assert summary["transaction_count"] == 3
        assert summary["average"] == Decimal("0.45")
        assert summary["by_category"] == {"Coffee": Decimal("0.85"), "Groceries": Decimal("0.50")}

    def test_empty_input(self):
        summary = summarize_round_ups([])

        assert summary["total"] == Decimal("0.00")
        assert summary["average"] == Decimal("0.00")
        assert summary["by_category"] == {}
