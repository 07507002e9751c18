# operix_pos/services/availability.py
from typing import TYPE_CHECKING

from operix_pos.core.errors import InsufficientStockError
from operix_pos.schemas.catalog import CatalogItem, CatalogProduct, CatalogService

if TYPE_CHECKING:
    from operix_pos.services.cart_ledger import CartLedger


def stock_limit(item: CatalogItem, ledger: "CartLedger") -> int | None:
    """
    Maximum quantity the cart may hold for `item`.

    - Services: None (unbounded).
    - Products: the snapshot's stock_on_hand, further capped by the
      stock ceiling the line recorded when it entered the cart, so a
      refreshed snapshot can never raise a line above its ceiling.
    """
    if isinstance(item, CatalogService):
        return None
    if isinstance(item, CatalogProduct):
        limit = item.stock_on_hand
        line = ledger.get(item.key)
        if line is not None and line.stock_ceiling is not None:
            limit = min(limit, line.stock_ceiling)
        return limit
    raise TypeError(f"Unsupported catalog item: {type(item).__name__}")


def available(item: CatalogItem, ledger: "CartLedger") -> int | None:
    """
    How many more units of `item` the cart can take:

        stock_on_hand - quantity already in cart

    None means unconstrained (services). Never negative.

    Advisory only: nothing is reserved on the server, another terminal
    can sell the same units.
    """
    limit = stock_limit(item, ledger)
    if limit is None:
        return None
    return max(limit - ledger.quantity_of(item.key), 0)


def ensure_available(item: CatalogItem, ledger: "CartLedger", quantity: int) -> None:
    """
    Gate for adding `quantity` more units of `item`.

    Raises:
        InsufficientStockError: if quantity exceeds what is available.
    """
    left = available(item, ledger)
    if left is not None and quantity > left:
        raise InsufficientStockError(
            item_id=item.id,
            name=item.name,
            requested=quantity,
            available=left,
        )
