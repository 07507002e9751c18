# operix_pos/repositories/catalog_repo.py
from typing import Any

from operix_pos.core.erp_client import ErpAuth, ErpClient
from operix_pos.schemas.catalog import CatalogProduct, CatalogService, Customer


def _as_list(data: Any) -> list[dict[str, Any]]:
    """
    The ERP answers with a bare list, but some endpoints wrap it
    ({"items": [...]}) or return null; anything else is treated as empty.
    """
    if isinstance(data, dict):
        data = data.get("items") or data.get("data")
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]


class CatalogRepository:
    """
    Data access layer for the ERP catalog and customer endpoints.

    - Pure HTTP reads, one call per method.
    - No caching, no business logic; failures propagate as ErpRequestError.
    """

    def __init__(self, client: ErpClient):
        self.client = client

    async def fetch_products(self, auth: ErpAuth, business_id: str) -> list[CatalogProduct]:
        data = await self.client.get_json(f"/businesses/{business_id}/products", auth)
        return [CatalogProduct.model_validate(row) for row in _as_list(data)]

    async def fetch_services(self, auth: ErpAuth, business_id: str) -> list[CatalogService]:
        data = await self.client.get_json(f"/businesses/{business_id}/services", auth)
        return [CatalogService.model_validate(row) for row in _as_list(data)]

    async def fetch_customers(self, auth: ErpAuth, business_id: str) -> list[Customer]:
        data = await self.client.get_json(f"/businesses/{business_id}/clientes", auth)
        return [Customer.model_validate(row) for row in _as_list(data)]
