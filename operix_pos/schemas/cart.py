# operix_pos/schemas/cart.py
from decimal import Decimal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from operix_pos.schemas.catalog import ItemType


class CartLineCreate(SQLModel):
    """
    Payload for adding a catalog item to the cart.

    The price is never taken from the client: it is frozen from the
    session's catalog snapshot.
    """

    model_config = ConfigDict(extra="forbid")

    item_id: str
    item_type: ItemType
    quantity: int = Field(default=1, gt=0)


class CartLineUpdate(SQLModel):
    """
    Payload for setting a line's quantity.

    0 (or less) removes the line.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int


class CartLineRead(SQLModel):
    """
    Read model for a single cart line, including line_total.
    """

    item_id: str
    item_type: ItemType
    display_name: str
    unit_price_at_add: Decimal
    quantity: int
    stock_ceiling: int | None = None
    line_total: Decimal


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartLineRead]
    total_quantity: int
    total_price: Decimal
