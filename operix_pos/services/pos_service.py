# operix_pos/services/pos_service.py
import logging
from datetime import datetime, timezone

from operix_pos.core.erp_client import ErpAuth
from operix_pos.core.errors import CatalogUnavailableError, SessionNotFoundError
from operix_pos.repositories.sale_repo import SaleRepository
from operix_pos.repositories.session_repo import PosSessionRepository
from operix_pos.schemas.cart import CartSummary
from operix_pos.schemas.catalog import CatalogRead, Customer, CustomerRead, ItemType, LineKey
from operix_pos.schemas.sale import (
    CheckoutRead,
    PaymentMethod,
    PosSessionRead,
    SaleSelection,
)
from operix_pos.services.cart_ledger import CartLedger, LineItem
from operix_pos.services.catalog_service import CatalogSnapshot, CatalogSnapshotService
from operix_pos.services.sale_submitter import SaleSubmitter

logger = logging.getLogger(__name__)


class PosSession:
    """
    One sale in progress on one terminal.

    Owns its cart ledger and checkout selection exclusively; the catalog
    snapshot is replaced (never edited) on every load.

    Cart operations are synchronous and never touch the network. Only
    load / reconcile / checkout suspend.
    """

    def __init__(
        self,
        business_id: str,
        catalog: CatalogSnapshotService,
        submitter: SaleSubmitter,
    ):
        self.business_id = business_id
        self.catalog = catalog
        self.submitter = submitter
        self.opened_at = datetime.now(timezone.utc)
        self.snapshot = CatalogSnapshot()
        self.customers: list[Customer] = []
        self.ledger = CartLedger()
        self.selection = SaleSelection()
        self.catalog_error: str | None = None

    # ---- catalog ----

    async def load(self, auth: ErpAuth) -> None:
        """
        Fetch a fresh snapshot and customer list.

        Raises:
            CatalogUnavailableError: if the ERP could not be read; the
            previous snapshot is kept.
        """
        snapshot, customers = await self.catalog.load_all(auth, self.business_id)
        self.snapshot = snapshot
        self.customers = customers
        self.catalog_error = None

    async def reconcile(self, auth: ErpAuth) -> bool:
        """
        Re-fetch the catalog so local stock matches the ERP.
        Failure is recorded on the session instead of raised.
        """
        try:
            await self.load(auth)
        except CatalogUnavailableError as e:
            self.catalog_error = e.message
            logger.warning(f"Catalog reconciliation failed for business {self.business_id}: {e.message}")
            return False
        return True

    def catalog_view(self, term: str | None = None) -> CatalogRead:
        return self.snapshot.to_read(self.ledger, term)

    def customer_view(self) -> list[CustomerRead]:
        return [
            CustomerRead(id=c.id, name=c.full_name, email=c.email)
            for c in self.customers
        ]

    # ---- cart ----

    def add(self, item_type: ItemType, item_id: str, quantity: int = 1) -> LineItem:
        item = self.snapshot.require(item_type, item_id)
        return self.ledger.add_line(item, quantity)

    def set_quantity(self, item_type: ItemType, item_id: str, quantity: int) -> LineItem | None:
        return self.ledger.set_quantity(LineKey(item_id, item_type), quantity)

    def remove(self, item_type: ItemType, item_id: str) -> None:
        self.ledger.remove_line(LineKey(item_id, item_type))

    def discard(self) -> None:
        """Drop the cart and the checkout selection without telling the ERP."""
        self.ledger.clear()
        self.selection.clear()

    def summary(self) -> CartSummary:
        return self.ledger.summary()

    # ---- checkout ----

    def select(
        self,
        customer_id: str | None,
        payment_method: PaymentMethod | None,
        notes: str | None,
    ) -> SaleSelection:
        self.selection.customer_id = customer_id
        self.selection.payment_method = payment_method
        self.selection.notes = notes
        return self.selection

    async def checkout(self, auth: ErpAuth) -> CheckoutRead:
        """
        Submit the cart. On success the cart is empty and the catalog
        has been re-fetched (catalog_refreshed tells whether that worked).
        """
        refreshed = False

        async def _reconcile() -> None:
            nonlocal refreshed
            refreshed = await self.reconcile(auth)

        result = await self.submitter.submit(
            auth,
            self.business_id,
            self.ledger,
            self.selection,
            reconcile=_reconcile,
        )
        return CheckoutRead(
            sale=result,
            cart=self.ledger.summary(),
            catalog_refreshed=refreshed,
        )

    def to_read(self) -> PosSessionRead:
        return PosSessionRead(
            business_id=self.business_id,
            opened_at=self.opened_at,
            catalog_fetched_at=self.snapshot.fetched_at,
            product_count=len(self.snapshot.products),
            service_count=len(self.snapshot.services),
            customer_count=len(self.customers),
            cart=self.ledger.summary(),
            selection=self.selection.model_copy(),
            submission_state=self.submitter.state,
            last_error=self.submitter.last_error or self.catalog_error,
        )


class PosService:
    """
    Business logic for terminal sale sessions.

    Responsibilities:
      - open a session (empty cart + first catalog load) per (business, user)
      - look up / close sessions
    The cart rules themselves live in CartLedger; the guard on who may
    reach these operations lives in the router dependencies.
    """

    def __init__(
        self,
        sessions: PosSessionRepository,
        catalog: CatalogSnapshotService,
        sales: SaleRepository,
    ):
        self.sessions = sessions
        self.catalog = catalog
        self.sales = sales

    async def open_session(self, auth: ErpAuth, business_id: str, user_id: str) -> PosSession:
        """
        Start a fresh sale, replacing any session the user had open for
        this business. A failed first load still opens the session; the
        error is reported in last_error and a refresh can retry.
        """
        session = PosSession(business_id, self.catalog, SaleSubmitter(self.sales))
        await session.reconcile(auth)
        self.sessions.put(user_id, session)
        logger.info(f"Sale session opened for user {user_id} in business {business_id}")
        return session

    def get_session(self, business_id: str, user_id: str) -> PosSession:
        session = self.sessions.get(business_id, user_id)
        if session is None:
            raise SessionNotFoundError()
        return session

    def close_session(self, business_id: str, user_id: str) -> None:
        if not self.sessions.delete(business_id, user_id):
            raise SessionNotFoundError()
        logger.info(f"Sale session closed for user {user_id} in business {business_id}")
