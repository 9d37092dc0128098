"""
Unit tests for the totals calculator.
"""
from decimal import Decimal

import pytest

from filingdesk.exceptions import InvalidItemError, ValidationError
from filingdesk.services.totals import (
    compute_subtotal,
    compute_subtotals,
    compute_total,
    format_money,
    quantize_money,
    to_decimal,
)


class TestComputeTotal:
    """Tests for compute_total."""

    def test_single_item(self):
        """Test total of one line is quantity times price."""
        assert compute_total([{"quantity": 2, "price": 25}]) == Decimal("50")

    def test_sums_subtotals(self):
        """Test total is the sum of every subtotal."""
        items = [
            {"quantity": 3, "price": Decimal("10.50")},
            {"quantity": 1, "price": Decimal("0.99")},
            {"quantity": 12, "price": Decimal("4")},
        ]
        assert compute_total(items) == Decimal("31.50") + Decimal("0.99") + Decimal("48")

    def test_empty_items_total_zero(self):
        """Test an empty list totals zero."""
        assert compute_total([]) == Decimal("0")

    def test_no_cumulative_float_error(self):
        """Test ten lines of 0.10 total exactly 1.00."""
        items = [{"quantity": 1, "price": 0.1} for _ in range(10)]
        assert compute_total(items) == Decimal("1.0")

    def test_stable_under_reordering(self):
        """Test the total does not depend on item order."""
        items = [
            {"quantity": 7, "price": "0.07"},
            {"quantity": 3, "price": "19.99"},
            {"quantity": 1, "price": "1000000.01"},
        ]
        assert compute_total(items) == compute_total(list(reversed(items)))

    def test_accepts_objects(self):
        """Test items exposing attributes are totalled like mappings."""

        class Item:
            quantity = 4
            price = Decimal("2.5")

        assert compute_total([Item()]) == Decimal("10.0")

    def test_zero_quantity_rejected(self):
        """Test quantity below one raises InvalidItemError."""
        with pytest.raises(InvalidItemError) as exc_info:
            compute_total([{"quantity": 1, "price": 1}, {"quantity": 0, "price": 5}])

        assert exc_info.value.index == 1
        assert exc_info.value.errors[0]["field"] == "items.1"

    def test_negative_price_rejected(self):
        """Test a negative price raises a ValidationError subclass."""
        with pytest.raises(ValidationError):
            compute_total([{"quantity": 1, "price": -1}])

    @pytest.mark.parametrize("quantity", [1.5, "2.25", Decimal("0.5")])
    def test_fractional_quantity_rejected(self, quantity):
        """Test a quantity that is not a whole number is refused."""
        with pytest.raises(InvalidItemError) as exc_info:
            compute_total([{"quantity": quantity, "price": 10}])

        assert "whole number" in exc_info.value.errors[0]["message"]

    def test_integral_decimal_quantity_accepted(self):
        assert compute_total([{"quantity": Decimal("2.0"), "price": 10}]) == Decimal("20.0")


class TestSubtotals:
    """Tests for per-line subtotals."""

    def test_compute_subtotal(self):
        """Test subtotal is unrounded."""
        assert compute_subtotal({"quantity": 3, "price": "0.333"}) == Decimal("0.999")

    def test_compute_subtotals_in_order(self):
        """Test subtotals follow item order."""
        items = [{"quantity": 2, "price": 5}, {"quantity": 1, "price": 7}]
        assert compute_subtotals(items) == [Decimal("10"), Decimal("7")]


class TestMoneyFormatting:
    """Tests for presentation rounding."""

    def test_format_two_places(self):
        """Test whole numbers get two decimals."""
        assert format_money(50) == "50.00"

    def test_round_half_up(self):
        """Test halves round away from zero."""
        assert quantize_money("2.675") == Decimal("2.68")
        assert format_money("0.005") == "0.01"

    def test_float_goes_through_str(self):
        """Test floats are converted by their repr, not their binary value."""
        assert to_decimal(0.1) == Decimal("0.1")
