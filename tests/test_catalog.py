from decimal import Decimal

import pytest
from pydantic import ValidationError

from operix_pos.core.errors import (
    CatalogItemNotFoundError,
    CatalogUnavailableError,
    ErpRequestError,
)
from operix_pos.repositories.catalog_repo import _as_list
from operix_pos.schemas.catalog import CatalogProduct, CatalogService, Customer, ItemType
from operix_pos.services.cart_ledger import CartLedger
from operix_pos.services.catalog_service import CatalogSnapshot, CatalogSnapshotService


class TestCatalogRows:
    """Parsing ERP catalog rows."""

    def test_product_from_wire_names(self):
        product = CatalogProduct.model_validate(
            {"id": 7, "nombre": "Gel", "precio_venta": "12.5", "stock_actual": 4, "activo": True}
        )

        assert product.id == "7"
        assert product.name == "Gel"
        assert product.sell_price == Decimal("12.5")
        assert product.stock_on_hand == 4
        assert product.key == (product.id, ItemType.PRODUCT)

    def test_service_from_wire_names(self):
        service = CatalogService.model_validate(
            {"id": "s2", "nombre": "Manicure", "precio": 15, "duracion_minutos": 45}
        )

        assert service.price == Decimal("15")
        assert service.duration_minutes == 45
        assert service.item_type is ItemType.SERVICE

    @pytest.mark.parametrize("raw, expected", [(-3, 0), (None, 0), (8, 8)])
    def test_stock_is_clamped(self, raw, expected):
        product = CatalogProduct.model_validate(
            {"id": "p", "nombre": "X", "precio_venta": 1, "stock": raw}
        )
        assert product.stock_on_hand == expected

    def test_negative_price_is_rejected(self):
        with pytest.raises(ValidationError):
            CatalogProduct.model_validate({"id": "p", "nombre": "X", "precio_venta": -1})

    def test_missing_active_flag_means_active(self):
        service = CatalogService.model_validate({"id": "s", "nombre": "X", "precio": 1, "activo": None})
        assert service.active is True

    def test_customer_full_name(self):
        customer = Customer.model_validate({"id": 3, "nombre": "Ana", "apellido": "Lopez"})
        assert customer.full_name == "Ana Lopez"
        assert Customer(id="4", name="Solo").full_name == "Solo"

    def test_wrapped_list_payloads(self):
        assert _as_list([{"id": 1}, "junk"]) == [{"id": 1}]
        assert _as_list({"items": [{"id": 1}]}) == [{"id": 1}]
        assert _as_list({"data": [{"id": 2}]}) == [{"id": 2}]
        assert _as_list(None) == []


class TestCatalogSnapshot:
    def test_inactive_items_are_dropped(self, product, service):
        retired = CatalogProduct(id="old", name="Old", sell_price=Decimal("1"), active=False)
        snapshot = CatalogSnapshot.build([product, retired], [service])

        assert [p.id for p in snapshot.products] == ["p1"]
        assert snapshot.find(ItemType.PRODUCT, "old") is None
        assert snapshot.is_loaded

    def test_require_unknown_item(self, product):
        snapshot = CatalogSnapshot.build([product], [])

        assert snapshot.require(ItemType.PRODUCT, "p1") is product
        with pytest.raises(CatalogItemNotFoundError):
            snapshot.require(ItemType.SERVICE, "p1")

    def test_empty_snapshot_is_not_loaded(self):
        assert not CatalogSnapshot().is_loaded

    def test_search_on_name_and_description(self, product, service):
        conditioner = CatalogProduct(
            id="p2", name="Conditioner", description="pairs with shampoo", sell_price=Decimal("8")
        )
        snapshot = CatalogSnapshot.build([product, conditioner], [service])

        products, services = snapshot.search("SHAMPOO")
        assert [p.id for p in products] == ["p1", "p2"]
        assert services == []

        products, services = snapshot.search("  ")
        assert len(products) == 2 and len(services) == 1

    def test_read_view_shows_what_is_left(self, product, service):
        snapshot = CatalogSnapshot.build([product], [service])
        ledger = CartLedger()
        ledger.add_line(product, 2)

        view = snapshot.to_read(ledger)

        assert view.products[0].stock_on_hand == 5
        assert view.products[0].available == 3
        assert view.services[0].duration_minutes == 30


@pytest.mark.anyio
class TestCatalogSnapshotService:
    async def test_load_all(self, auth, catalog_repo):
        snapshot, customers = await CatalogSnapshotService(catalog_repo).load_all(auth, "biz-1")

        assert len(snapshot.products) == 1
        assert len(snapshot.services) == 1
        assert [c.id for c in customers] == ["c1"]

    async def test_load_snapshot_skips_customers(self, auth, catalog_repo):
        snapshot = await CatalogSnapshotService(catalog_repo).load_snapshot(auth, "biz-1")
        assert snapshot.find(ItemType.SERVICE, "s1") is not None

    async def test_erp_failure_becomes_catalog_unavailable(self, auth, catalog_repo):
        catalog_repo.error = ErpRequestError("ERP error 500", status_code=500)

        with pytest.raises(CatalogUnavailableError) as exc_info:
            await CatalogSnapshotService(catalog_repo).load_all(auth, "biz-1")

        assert "ERP error 500" in exc_info.value.message
