# operix_pos/core/errors.py
"""
Error taxonomy of the POS engine.

Cart-local errors (validation, stock, missing lines) are raised
synchronously to the immediate caller and never touch the cart.
SubmissionError is the only kind that crosses the network boundary.

The FastAPI app maps each class to an HTTP status in main.py.
"""

from typing import Any

GENERIC_SUBMISSION_MESSAGE = "Failed to record sale."


class PosError(Exception):
    """Base class for every error raised by the POS engine."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> Any:
        return self.message


# ---- validation (before any network call) ----


class CartValidationError(PosError):
    pass


class EmptyCartError(CartValidationError):
    def __init__(self, message: str = "Cannot complete sale with an empty cart."):
        super().__init__(message)


class MissingPaymentMethodError(CartValidationError):
    def __init__(self, message: str = "Select a payment method."):
        super().__init__(message)


class InvalidQuantityError(CartValidationError):
    def __init__(self, quantity: int):
        super().__init__(f"Quantity must be at least 1 (got {quantity}).")
        self.quantity = quantity


# ---- stock ----


class InsufficientStockError(PosError):
    """
    Requested quantity exceeds what the catalog snapshot allows.

    `available` is how many more units could still be placed in the cart
    when the request was rejected.
    """

    def __init__(self, item_id: str, name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {name}: requested {requested}, "
            f"only {available} available."
        )
        self.item_id = item_id
        self.name = name
        self.requested = requested
        self.available = available

    def to_detail(self) -> Any:
        return {
            "message": self.message,
            "item_id": self.item_id,
            "requested": self.requested,
            "available": self.available,
        }


# ---- lookups ----


class LineNotFoundError(PosError):
    status_code = 404

    def __init__(self, item_id: str, item_type: str):
        super().__init__(f"Item {item_type}:{item_id} is not in the cart.")


class CatalogItemNotFoundError(PosError):
    status_code = 404

    def __init__(self, item_id: str, item_type: str):
        super().__init__(f"Catalog {item_type} {item_id} not found or inactive.")


class SessionNotFoundError(PosError):
    status_code = 404

    def __init__(self, message: str = "No active sale session."):
        super().__init__(message)


# ---- remote collaborators ----


class SubmissionInProgressError(PosError):
    status_code = 409

    def __init__(self, message: str = "A sale is already being submitted."):
        super().__init__(message)


class SubmissionError(PosError):
    """
    The remote ledger rejected the sale or could not be reached.
    `message` is the server-provided reason when there is one.
    """

    status_code = 502

    def __init__(self, message: str | None = None, upstream_status: int | None = None):
        super().__init__(message or GENERIC_SUBMISSION_MESSAGE)
        self.upstream_status = upstream_status


class CatalogUnavailableError(PosError):
    status_code = 502

    def __init__(self, message: str = "Failed to load catalog data."):
        super().__init__(message)


class ErpRequestError(Exception):
    """
    Raised by the ERP client for any failed HTTP exchange.

    status_code is None for transport-level failures (timeouts,
    refused connections). server_message is the reason the ERP
    itself gave, when its error body carried one.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        server_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.server_message = server_message


class ErpResponseFormatError(ErpRequestError):
    """
    The ERP answered 2xx but the body could not be decoded.

    The request itself succeeded: for a record-sale call the sale is
    already recorded.
    """
