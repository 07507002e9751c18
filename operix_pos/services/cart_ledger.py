# operix_pos/services/cart_ledger.py
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterator

from operix_pos.core.errors import (
    InsufficientStockError,
    InvalidQuantityError,
    LineNotFoundError,
)
from operix_pos.schemas.cart import CartLineRead, CartSummary
from operix_pos.schemas.catalog import CatalogItem, CatalogProduct, ItemType, LineKey
from operix_pos.services import pricing
from operix_pos.services.availability import ensure_available


@dataclass(frozen=True)
class LineItem:
    """
    One row of the cart.

    Frozen: a quantity change replaces the row with a copy, so
    unit_price_at_add can never change once the line exists.
    stock_ceiling is the catalog stock observed at first add
    (products only; None for services).
    """

    item_id: str
    item_type: ItemType
    display_name: str
    unit_price_at_add: Decimal
    quantity: int
    stock_ceiling: int | None = None

    @property
    def key(self) -> LineKey:
        return LineKey(self.item_id, self.item_type)

    @property
    def line_total(self) -> Decimal:
        return pricing.line_total(self)

    def to_read(self) -> CartLineRead:
        return CartLineRead(
            item_id=self.item_id,
            item_type=self.item_type,
            display_name=self.display_name,
            unit_price_at_add=self.unit_price_at_add,
            quantity=self.quantity,
            stock_ceiling=self.stock_ceiling,
            line_total=self.line_total,
        )


class CartLedger:
    """
    Ordered set of line items of the sale in progress.

    Rules:
      - at most one line per (item_id, item_type); a repeat add merges
      - quantity >= 1 on every line; setting 0 deletes the line
      - product lines never exceed their stock_ceiling
      - totals are recomputed from the lines on every read

    A rejected operation raises and leaves the ledger untouched.
    """

    def __init__(self) -> None:
        # dict keeps insertion order = display order
        self._lines: dict[LineKey, LineItem] = {}

    # ---- reads ----

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[LineItem]:
        return iter(list(self._lines.values()))

    def __contains__(self, key: object) -> bool:
        return key in self._lines

    @property
    def lines(self) -> list[LineItem]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def get(self, key: LineKey) -> LineItem | None:
        return self._lines.get(key)

    def quantity_of(self, key: LineKey) -> int:
        line = self._lines.get(key)
        return line.quantity if line else 0

    @property
    def total(self) -> Decimal:
        return pricing.cart_total(self._lines.values())

    @property
    def total_quantity(self) -> int:
        return pricing.total_quantity(self._lines.values())

    def summary(self) -> CartSummary:
        return CartSummary(
            items=[line.to_read() for line in self._lines.values()],
            total_quantity=self.total_quantity,
            total_price=self.total,
        )

    # ---- mutations ----

    def add_line(self, item: CatalogItem, quantity: int = 1) -> LineItem:
        """
        Add `quantity` units of a catalog item.

        - Existing key: quantity is increased on the existing line
          (price and ceiling stay as first recorded).
        - New key: the line freezes the catalog's current price and,
          for products, the current stock_on_hand as its ceiling.

        Raises:
            InvalidQuantityError: quantity < 1
            InsufficientStockError: post-merge quantity above the limit
        """
        if quantity < 1:
            raise InvalidQuantityError(quantity)

        ensure_available(item, self, quantity)

        existing = self._lines.get(item.key)
        if existing is not None:
            line = replace(existing, quantity=existing.quantity + quantity)
        else:
            line = LineItem(
                item_id=item.id,
                item_type=item.item_type,
                display_name=item.name,
                unit_price_at_add=item.unit_price,
                quantity=quantity,
                stock_ceiling=(
                    item.stock_on_hand if isinstance(item, CatalogProduct) else None
                ),
            )

        self._lines[line.key] = line
        return line

    def set_quantity(self, key: LineKey, new_quantity: int) -> LineItem | None:
        """
        Set the quantity of an existing line.

        new_quantity <= 0 removes the line and returns None.
        Services have no upper bound.

        Raises:
            LineNotFoundError: no line with this key
            InsufficientStockError: above the line's stock_ceiling
        """
        existing = self._lines.get(key)
        if existing is None:
            raise LineNotFoundError(key.item_id, key.item_type.value)

        if new_quantity <= 0:
            self.remove_line(key)
            return None

        ceiling = existing.stock_ceiling
        if ceiling is not None and new_quantity > ceiling:
            raise InsufficientStockError(
                item_id=existing.item_id,
                name=existing.display_name,
                requested=new_quantity,
                available=ceiling,
            )

        line = replace(existing, quantity=new_quantity)
        self._lines[key] = line
        return line

    def remove_line(self, key: LineKey) -> None:
        """Unconditional deletion; a missing key is a no-op."""
        self._lines.pop(key, None)

    def clear(self) -> None:
        self._lines.clear()
