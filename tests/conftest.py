"""
Shared fixtures: catalog rows, in-memory fakes for the ERP repositories,
and a FastAPI test client wired to them.
"""

import os

# Settings are required at import time of the app modules.
os.environ.setdefault("ERP_API_URL", "http://erp.test")
os.environ.setdefault("JWT_SECRET", "test-secret")

import asyncio
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from operix_pos.core.auth import CurrentUser, get_current_user
from operix_pos.core.erp_client import ErpAuth
from operix_pos.core.permissions import PermissionCache, PermissionService
from operix_pos.dependencies import get_permission_service, get_pos_service
from operix_pos.repositories.session_repo import PosSessionRepository
from operix_pos.schemas.catalog import CatalogProduct, CatalogService, Customer
from operix_pos.schemas.permissions import UserPermissions
from operix_pos.schemas.sale import SaleResult
from operix_pos.services.catalog_service import CatalogSnapshotService
from operix_pos.services.pos_service import PosService

BUSINESS_ID = "biz-1"
USER_ID = "user-1"


class FakeCatalogRepository:
    """Serves fixed catalog rows; set `error` to make every fetch fail."""

    def __init__(self, products=None, services=None, customers=None):
        self.products = list(products or [])
        self.services = list(services or [])
        self.customers = list(customers or [])
        self.error: Exception | None = None
        self.product_fetches = 0

    async def fetch_products(self, auth, business_id):
        self.product_fetches += 1
        if self.error:
            raise self.error
        return list(self.products)

    async def fetch_services(self, auth, business_id):
        if self.error:
            raise self.error
        return list(self.services)

    async def fetch_customers(self, auth, business_id):
        if self.error:
            raise self.error
        return list(self.customers)


class FakeSaleRepository:
    """
    Records every request. `gate` (an asyncio.Event) holds the call
    open until set, to observe the in-flight state.
    """

    def __init__(self, result: SaleResult | None = None, error: Exception | None = None):
        self.result = result or SaleResult(sale_id="V-100")
        self.error = error
        self.requests = []
        self.gate: asyncio.Event | None = None

    async def submit_sale(self, auth, business_id, request):
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise self.error
        return self.result


class FakePermissionRepository:
    def __init__(self, permissions: UserPermissions | None = None):
        self.permissions = permissions or UserPermissions(
            permissions={"puede_ver_ventas": True, "puede_editar_ventas": True}
        )
        self.errors: list[Exception] = []
        self.calls = 0

    async def fetch_permissions(self, auth, business_id):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.permissions


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def auth():
    return ErpAuth(token="tok")


@pytest.fixture
def product():
    return CatalogProduct(id="p1", name="Shampoo", sell_price=Decimal("10.00"), stock_on_hand=5)


@pytest.fixture
def service():
    return CatalogService(id="s1", name="Haircut", price=Decimal("20.00"), duration_minutes=30)


@pytest.fixture
def catalog_repo(product, service):
    return FakeCatalogRepository(
        products=[product],
        services=[service],
        customers=[Customer(id="c1", name="Ana", last_name="Lopez")],
    )


@pytest.fixture
def sale_repo():
    return FakeSaleRepository()


@pytest.fixture
def permission_repo():
    return FakePermissionRepository()


@pytest.fixture
def pos_service(catalog_repo, sale_repo):
    return PosService(
        sessions=PosSessionRepository(),
        catalog=CatalogSnapshotService(catalog_repo),
        sales=sale_repo,
    )


@pytest.fixture
def client(pos_service, permission_repo):
    from operix_pos.main import app

    permission_service = PermissionService(
        repo=permission_repo,
        cache=PermissionCache(ttl_seconds=300),
        retries=0,
    )
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(user_id=USER_ID, token="tok")
    app.dependency_overrides[get_pos_service] = lambda: pos_service
    app.dependency_overrides[get_permission_service] = lambda: permission_service
    yield TestClient(app)
    app.dependency_overrides.clear()
