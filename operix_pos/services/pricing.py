# operix_pos/services/pricing.py
"""
Totals are always derived from the lines, never kept as a running sum.
No rounding beyond what Decimal multiplication produces.
"""

from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from operix_pos.services.cart_ledger import LineItem

ZERO = Decimal("0")


def line_total(item: "LineItem") -> Decimal:
    return item.quantity * item.unit_price_at_add


def cart_total(items: Iterable["LineItem"]) -> Decimal:
    return sum((line_total(it) for it in items), ZERO)


def total_quantity(items: Iterable["LineItem"]) -> int:
    return sum(it.quantity for it in items)
