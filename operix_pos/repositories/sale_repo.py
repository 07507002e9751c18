import logging

from pydantic import ValidationError

from operix_pos.core.erp_client import ErpAuth, ErpClient
from operix_pos.core.errors import ErpResponseFormatError
from operix_pos.schemas.sale import SaleRequest, SaleResult

logger = logging.getLogger(__name__)


class SaleRepository:
    """
    Remote sale ledger: records a finished sale in the ERP.

    The ERP is the system of record for stock decrement and
    re-validates every line server-side.
    """

    def __init__(self, client: ErpClient):
        self.client = client

    async def submit_sale(
        self,
        auth: ErpAuth,
        business_id: str,
        request: SaleRequest,
    ) -> SaleResult:
        """
        POST the sale. A failed call raises ErpRequestError and nothing was
        recorded. Once the ERP answered 2xx the body is read best-effort.
        """
        try:
            data = await self.client.post_json(
                f"/businesses/{business_id}/ventas/record-sale",
                auth,
                request.to_wire(),
            )
        except ErpResponseFormatError:
            logger.warning(f"Sale recorded for business {business_id} with a non-JSON reply")
            return SaleResult()
        try:
            return SaleResult.model_validate(data if isinstance(data, dict) else {})
        except ValidationError as e:
            logger.warning(f"Sale recorded for business {business_id} but the reply was unreadable: {e}")
            return SaleResult()
