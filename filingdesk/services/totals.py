"""
Totals calculator.

Pure functions deriving item subtotals and the filing total from line items.
Sums are exact; rounding happens only when a value is presented.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Mapping

from filingdesk.exceptions import InvalidItemError

MONEY_PLACES = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a numeric value to Decimal.

    Floats go through str() so their binary representation error is not
    carried into the sum.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item[name]
    return getattr(item, name)


def compute_subtotal(item: Any) -> Decimal:
    """Return quantity x price for an item, unrounded."""
    return to_decimal(_field(item, "quantity")) * to_decimal(_field(item, "price"))


def check_item(item: Any, index: int = 0) -> None:
    """
    Raise InvalidItemError if an item cannot be totalled.

    Quantity must be a whole number of at least 1; price must not be negative.

    Args:
        item: Item with quantity and price
        index: Position of the item, used in the error
    """
    quantity = to_decimal(_field(item, "quantity"))
    price = to_decimal(_field(item, "price"))
    if quantity != quantity.to_integral_value():
        raise InvalidItemError(index, f"quantity must be a whole number, got {quantity}")
    if quantity < 1:
        raise InvalidItemError(index, f"quantity must be at least 1, got {quantity}")
    if price < 0:
        raise InvalidItemError(index, f"price must not be negative, got {price}")


def compute_total(items: Iterable[Any]) -> Decimal:
    """
    Sum the subtotals of all items.

    Args:
        items: Items exposing quantity and price (objects or mappings)

    Returns:
        Exact total as Decimal

    Raises:
        InvalidItemError: If any item has quantity < 1 or price < 0
    """
    total = Decimal("0")
    for index, item in enumerate(items):
        check_item(item, index)
        total += compute_subtotal(item)
    return total


def compute_subtotals(items: Iterable[Any]) -> List[Decimal]:
    """Subtotals in item order, each item checked like compute_total."""
    subtotals = []
    for index, item in enumerate(items):
        check_item(item, index)
        subtotals.append(compute_subtotal(item))
    return subtotals


def quantize_money(value: Any) -> Decimal:
    """Round a value to 2 decimal places, half up."""
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def format_money(value: Any) -> str:
    """Fixed 2-decimal display string, e.g. '50.00'."""
    return f"{quantize_money(value):.2f}"
