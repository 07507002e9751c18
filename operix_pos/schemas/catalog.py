# operix_pos/schemas/catalog.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Literal, NamedTuple, Union

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field


def _rename_wire_keys(data: Any, names: dict[str, str]) -> Any:
    """
    Map ERP (Spanish) field names onto ours.
    Our own names win when both are present.
    """
    if not isinstance(data, dict):
        return data
    out = dict(data)
    for wire, ours in names.items():
        if wire in out and ours not in out:
            out[ours] = out.pop(wire)
    return out


class ItemType(str, Enum):
    """
    Discriminant of every purchasable entity.

    Values are the ERP wire names ("tipo" in sale lines).
    """

    PRODUCT = "producto"
    SERVICE = "servicio"


class LineKey(NamedTuple):
    """Composite key of a cart line: one row per (item_id, item_type)."""

    item_id: str
    item_type: ItemType


class _CatalogEntry(SQLModel):
    """
    Shared fields of catalog rows coming from the ERP.

    The ERP speaks Spanish field names; both the wire names and our
    own names are accepted on input (see WIRE_NAMES).
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    WIRE_NAMES: ClassVar[dict[str, str]] = {
        "nombre": "name",
        "descripcion": "description",
        "activo": "active",
    }

    id: str
    name: str
    description: str | None = None
    active: bool = True

    @model_validator(mode="before")
    @classmethod
    def from_wire(cls, data: Any) -> Any:
        return _rename_wire_keys(data, cls.WIRE_NAMES)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_str(cls, v: Any) -> str:
        # Older ERP endpoints return integer ids.
        return str(v)

    @field_validator("active", mode="before")
    @classmethod
    def none_is_active(cls, v: Any) -> Any:
        return True if v is None else v

    @property
    def key(self) -> LineKey:
        return LineKey(self.id, self.item_type)  # type: ignore[attr-defined]

    def matches(self, term: str) -> bool:
        """Case-insensitive search over name and description."""
        term = term.strip().lower()
        if not term:
            return True
        if term in self.name.lower():
            return True
        return bool(self.description and term in self.description.lower())


class CatalogProduct(_CatalogEntry):
    """
    Purchasable product with on-hand stock.
    Read-only for the cart engine; replaced wholesale on every fetch.
    """

    WIRE_NAMES: ClassVar[dict[str, str]] = {
        **_CatalogEntry.WIRE_NAMES,
        "precio_venta": "sell_price",
        "stock_actual": "stock_on_hand",
        "stock": "stock_on_hand",
    }

    item_type: Literal[ItemType.PRODUCT] = ItemType.PRODUCT
    sell_price: Decimal = Field(ge=0)
    stock_on_hand: int = Field(default=0, ge=0)

    @field_validator("stock_on_hand", mode="before")
    @classmethod
    def clamp_stock(cls, v: Any) -> int:
        # The ERP may report oversold (negative) or unknown stock.
        if v is None:
            return 0
        return max(int(v), 0)

    @property
    def unit_price(self) -> Decimal:
        return self.sell_price


class CatalogService(_CatalogEntry):
    """Purchasable service. No stock concept: always available."""

    WIRE_NAMES: ClassVar[dict[str, str]] = {
        **_CatalogEntry.WIRE_NAMES,
        "precio": "price",
        "duracion_minutos": "duration_minutes",
    }

    item_type: Literal[ItemType.SERVICE] = ItemType.SERVICE
    price: Decimal = Field(ge=0)
    duration_minutes: int | None = None

    @property
    def unit_price(self) -> Decimal:
        return self.price


CatalogItem = Union[CatalogProduct, CatalogService]


class Customer(SQLModel):
    """
    Customer as listed by the ERP (id/name only matter to the cart).
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str
    last_name: str | None = None
    email: str | None = None

    @model_validator(mode="before")
    @classmethod
    def from_wire(cls, data: Any) -> Any:
        return _rename_wire_keys(data, {"nombre": "name", "apellido": "last_name"})

    @field_validator("id", mode="before")
    @classmethod
    def id_as_str(cls, v: Any) -> str:
        return str(v)

    @property
    def full_name(self) -> str:
        if self.last_name:
            return f"{self.name} {self.last_name}"
        return self.name


# ---- read models ----


class CatalogProductRead(SQLModel):
    """Product row as shown to the terminal, with what is left to sell."""

    id: str
    name: str
    description: str | None = None
    sell_price: Decimal
    stock_on_hand: int
    available: int


class CatalogServiceRead(SQLModel):
    id: str
    name: str
    description: str | None = None
    price: Decimal
    duration_minutes: int | None = None


class CatalogRead(SQLModel):
    """
    Filtered view of the session's catalog snapshot.
    """

    products: list[CatalogProductRead]
    services: list[CatalogServiceRead]
    fetched_at: datetime | None = None


class CustomerRead(SQLModel):
    id: str
    name: str
    email: str | None = None
