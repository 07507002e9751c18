# operix_pos/services/sale_submitter.py
import asyncio
import logging
from typing import Awaitable, Callable

from operix_pos.core.erp_client import ErpAuth
from operix_pos.core.errors import (
    EmptyCartError,
    ErpRequestError,
    MissingPaymentMethodError,
    SubmissionError,
    SubmissionInProgressError,
)
from operix_pos.repositories.sale_repo import SaleRepository
from operix_pos.schemas.sale import (
    SaleRequest,
    SaleRequestLine,
    SaleResult,
    SaleSelection,
    SubmissionState,
)
from operix_pos.services.cart_ledger import CartLedger

logger = logging.getLogger(__name__)

Reconcile = Callable[[], Awaitable[object]]


class SaleSubmitter:
    """
    Commits a cart to the remote sale ledger.

    State machine:

      idle -> submitting -> settled   (cart + selection reset, catalog reconciled)
                         -> failed    (cart untouched, reason surfaced)

    settled / failed accept a new submission. A submission while
    submitting is rejected: at most one sale in flight per cart.
    The cart may still be edited while a submission is in flight.
    """

    def __init__(self, repo: SaleRepository):
        self.repo = repo
        self.state = SubmissionState.IDLE
        self.last_error: str | None = None
        self.last_result: SaleResult | None = None

    @property
    def in_flight(self) -> bool:
        return self.state is SubmissionState.SUBMITTING

    @staticmethod
    def build_request(ledger: CartLedger, selection: SaleSelection) -> SaleRequest:
        """
        Map the ledger to the ERP request body, each line priced at its
        frozen unit_price_at_add.

        Raises:
            EmptyCartError: no lines
            MissingPaymentMethodError: no payment method selected
        """
        if ledger.is_empty:
            raise EmptyCartError()
        if not selection.payment_method:
            raise MissingPaymentMethodError()

        return SaleRequest(
            cliente_id=selection.customer_id,
            metodo_pago=selection.payment_method,
            observaciones=selection.notes,
            items=[
                SaleRequestLine(
                    id=line.item_id,
                    tipo=line.item_type,
                    cantidad=line.quantity,
                    precio=line.unit_price_at_add,
                )
                for line in ledger
            ],
        )

    async def submit(
        self,
        auth: ErpAuth,
        business_id: str,
        ledger: CartLedger,
        selection: SaleSelection,
        reconcile: Reconcile | None = None,
    ) -> SaleResult:
        """
        Validate, send exactly one record-sale call, then settle or fail.

        On success the ledger and selection are reset and `reconcile`
        (the catalog re-fetch) is awaited.

        Raises:
            SubmissionInProgressError: another submission is in flight
            EmptyCartError / MissingPaymentMethodError: before any call
            SubmissionError: the ERP rejected the sale or was unreachable
        """
        if self.in_flight:
            raise SubmissionInProgressError()

        request = self.build_request(ledger, selection)

        self.state = SubmissionState.SUBMITTING
        self.last_error = None
        logger.info(
            f"Submitting sale for business {business_id}: "
            f"{len(request.items)} lines, total {ledger.total}"
        )

        try:
            result = await self.repo.submit_sale(auth, business_id, request)
        except ErpRequestError as e:
            self._fail(business_id, e.server_message)
            raise SubmissionError(e.server_message, upstream_status=e.status_code) from e
        except asyncio.CancelledError:
            self._fail(business_id, "Sale submission was cancelled.")
            raise
        except Exception as e:
            logger.exception(f"Unexpected error while recording sale for business {business_id}")
            self._fail(business_id, None)
            raise SubmissionError() from e

        self.state = SubmissionState.SETTLED
        self.last_result = result
        logger.info(f"Sale {result.sale_id or '(no id)'} recorded for business {business_id}")

        ledger.clear()
        selection.clear()
        if reconcile is not None:
            await reconcile()
        return result

    def _fail(self, business_id: str, reason: str | None) -> None:
        self.state = SubmissionState.FAILED
        self.last_error = reason or SubmissionError().message
        logger.warning(f"Sale submission failed for business {business_id}: {self.last_error}")
