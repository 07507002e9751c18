# operix_pos/services/catalog_service.py
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import ValidationError

from operix_pos.core.erp_client import ErpAuth
from operix_pos.core.errors import CatalogItemNotFoundError, CatalogUnavailableError, ErpRequestError
from operix_pos.repositories.catalog_repo import CatalogRepository
from operix_pos.schemas.catalog import (
    CatalogItem,
    CatalogProduct,
    CatalogProductRead,
    CatalogRead,
    CatalogService,
    CatalogServiceRead,
    Customer,
    ItemType,
    LineKey,
)
from operix_pos.services.availability import available

if TYPE_CHECKING:
    from operix_pos.services.cart_ledger import CartLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Read-only view of what can be sold, as of one fetch.

    Inactive entries are dropped at build time. A new fetch produces
    a new snapshot; existing cart lines keep the prices and ceilings
    they froze from older snapshots.
    """

    products: tuple[CatalogProduct, ...] = ()
    services: tuple[CatalogService, ...] = ()
    fetched_at: datetime | None = None
    _index: dict[LineKey, CatalogItem] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def build(
        cls,
        products: list[CatalogProduct],
        services: list[CatalogService],
        fetched_at: datetime | None = None,
    ) -> "CatalogSnapshot":
        active_products = tuple(p for p in products if p.active)
        active_services = tuple(s for s in services if s.active)
        index: dict[LineKey, CatalogItem] = {}
        for item in (*active_products, *active_services):
            index[item.key] = item
        return cls(
            products=active_products,
            services=active_services,
            fetched_at=fetched_at or datetime.now(timezone.utc),
            _index=index,
        )

    @property
    def is_loaded(self) -> bool:
        return self.fetched_at is not None

    def find(self, item_type: ItemType, item_id: str) -> CatalogItem | None:
        return self._index.get(LineKey(item_id, item_type))

    def require(self, item_type: ItemType, item_id: str) -> CatalogItem:
        item = self.find(item_type, item_id)
        if item is None:
            raise CatalogItemNotFoundError(item_id, item_type.value)
        return item

    def search(self, term: str | None = None) -> tuple[list[CatalogProduct], list[CatalogService]]:
        """Filter products and services by name/description (case-insensitive)."""
        if not term or not term.strip():
            return list(self.products), list(self.services)
        return (
            [p for p in self.products if p.matches(term)],
            [s for s in self.services if s.matches(term)],
        )

    def to_read(self, ledger: "CartLedger", term: str | None = None) -> CatalogRead:
        """
        Render the (optionally filtered) snapshot, with per-product
        availability given what the cart already holds.
        """
        products, services = self.search(term)
        return CatalogRead(
            products=[
                CatalogProductRead(
                    id=p.id,
                    name=p.name,
                    description=p.description,
                    sell_price=p.sell_price,
                    stock_on_hand=p.stock_on_hand,
                    available=available(p, ledger) or 0,
                )
                for p in products
            ],
            services=[
                CatalogServiceRead(
                    id=s.id,
                    name=s.name,
                    description=s.description,
                    price=s.price,
                    duration_minutes=s.duration_minutes,
                )
                for s in services
            ],
            fetched_at=self.fetched_at,
        )


class CatalogSnapshotService:
    """
    Builds catalog snapshots and customer lists from the ERP.

    Products, services and customers are fetched concurrently; any
    failure fails the whole load (no partial snapshot).
    """

    def __init__(self, repo: CatalogRepository):
        self.repo = repo

    async def load_snapshot(self, auth: ErpAuth, business_id: str) -> CatalogSnapshot:
        snapshot, _ = await self.load_all(auth, business_id, with_customers=False)
        return snapshot

    async def load_all(
        self,
        auth: ErpAuth,
        business_id: str,
        with_customers: bool = True,
    ) -> tuple[CatalogSnapshot, list[Customer]]:
        """
        Fetch products + services (+ customers).

        Raises:
            CatalogUnavailableError: if any of the ERP calls fails.
        """
        calls = [
            self.repo.fetch_products(auth, business_id),
            self.repo.fetch_services(auth, business_id),
        ]
        if with_customers:
            calls.append(self.repo.fetch_customers(auth, business_id))

        try:
            results = await asyncio.gather(*calls)
        except ErpRequestError as e:
            logger.warning(f"Catalog load failed for business {business_id}: {e.message}")
            raise CatalogUnavailableError(
                f"Failed to load catalog data: {e.message}"
            ) from e
        except ValidationError as e:
            logger.warning(f"Catalog load for business {business_id} returned malformed rows: {e}")
            raise CatalogUnavailableError("Catalog data from the ERP is malformed.") from e

        products, services = results[0], results[1]
        customers = results[2] if with_customers else []
        snapshot = CatalogSnapshot.build(products, services)
        logger.info(
            f"Catalog loaded for business {business_id}: "
            f"{len(snapshot.products)} products, {len(snapshot.services)} services, "
            f"{len(customers)} customers"
        )
        return snapshot, customers
