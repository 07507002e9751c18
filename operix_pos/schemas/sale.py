# operix_pos/schemas/sale.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from pydantic import ConfigDict, field_serializer, field_validator, model_validator
from sqlmodel import SQLModel, Field

from operix_pos.schemas.cart import CartSummary
from operix_pos.schemas.catalog import ItemType

PaymentMethod = Literal["efectivo", "tarjeta", "transferencia"]


class SubmissionState(str, Enum):
    """
    Sale submitter states:

      idle -> submitting -> settled | failed

    settled and failed may submit again (next sale / retry).
    """

    IDLE = "idle"
    SUBMITTING = "submitting"
    SETTLED = "settled"
    FAILED = "failed"


class SaleSelection(SQLModel):
    """
    Checkout choices of the current sale.

    - customer_id: None means walk-in / anonymous customer
    - payment_method: must be set before checkout
    - notes: optional free text
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    customer_id: str | None = None
    payment_method: PaymentMethod | None = None
    notes: str | None = None

    @field_validator("customer_id", "notes", mode="before")
    @classmethod
    def blank_is_none(cls, v: Any) -> Any:
        if v is None:
            return v
        v = str(v).strip()
        return v or None

    def clear(self) -> None:
        self.customer_id = None
        self.payment_method = None
        self.notes = None


# ---- ERP wire models ----


class SaleRequestLine(SQLModel):
    """
    One line of the record-sale request.
    Serialized with the ERP field names: id, tipo, cantidad, precio.
    """

    id: str
    tipo: ItemType
    cantidad: int = Field(gt=0)
    precio: Decimal

    @field_serializer("precio", when_used="json")
    def precio_as_number(self, v: Decimal) -> float:
        # JSON number on the wire, not a string.
        return float(v)


class SaleRequest(SQLModel):
    """
    Body of POST /businesses/{business_id}/ventas/record-sale.
    """

    cliente_id: str | None = None
    metodo_pago: PaymentMethod
    observaciones: str | None = None
    items: list[SaleRequestLine]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class SaleResult(SQLModel):
    """
    ERP answer to a recorded sale.

    Any 2xx answer means the sale is recorded. The ERP may answer with
    just a message (or nothing at all), so every field is optional.
    """

    model_config = ConfigDict(extra="ignore")

    sale_id: str | None = None
    total: Decimal | None = None
    message: str | None = None

    @model_validator(mode="before")
    @classmethod
    def from_wire(cls, data: Any) -> Any:
        if data is None:
            return {}
        if not isinstance(data, dict):
            return data
        out = dict(data)
        if "sale_id" not in out:
            for key in ("id", "venta_id", "id_venta"):
                if key in out:
                    out["sale_id"] = out[key]
                    break
        if "total" not in out:
            for key in ("monto_total", "total_venta"):
                if key in out:
                    out["total"] = out[key]
                    break
        if "message" not in out and "mensaje" in out:
            out["message"] = out["mensaje"]
        return out

    @field_validator("sale_id", mode="before")
    @classmethod
    def id_as_str(cls, v: Any) -> str | None:
        return None if v is None else str(v)


# ---- API payloads / read models ----


class SaleSelectionUpdate(SQLModel):
    """
    Payload for PUT /session/selection.
    Every field is replaced (send null to clear).
    """

    model_config = ConfigDict(extra="forbid")

    customer_id: str | None = None
    payment_method: PaymentMethod | None = None
    notes: str | None = Field(default=None, max_length=500)


class CheckoutRead(SQLModel):
    """
    Result of a successful checkout.

    catalog_refreshed is False when the sale settled but the
    post-sale catalog reload failed.
    """

    sale: SaleResult
    cart: CartSummary
    catalog_refreshed: bool


class PosSessionRead(SQLModel):
    """
    Full state of a terminal's sale session.
    """

    business_id: str
    opened_at: datetime
    catalog_fetched_at: datetime | None = None
    product_count: int
    service_count: int
    customer_count: int
    cart: CartSummary
    selection: SaleSelection
    submission_state: SubmissionState
    last_error: str | None = None
