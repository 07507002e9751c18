"""
HTTP surface of the POS engine, with the ERP replaced by in-memory fakes.
"""

from decimal import Decimal

from jose import jwt

from operix_pos.core.config import get_settings
from operix_pos.core.errors import ErpRequestError, ErpResponseFormatError
from operix_pos.schemas.permissions import UserPermissions

BUSINESS_ID = "biz-1"
BASE = f"/api/v1/businesses/{BUSINESS_ID}/pos"


def open_session(client):
    response = client.post(f"{BASE}/session")
    assert response.status_code == 201, response.text
    return response.json()


class TestSession:
    def test_open_session_loads_catalog(self, client):
        body = open_session(client)

        assert body["business_id"] == BUSINESS_ID
        assert body["product_count"] == 1
        assert body["service_count"] == 1
        assert body["customer_count"] == 1
        assert body["cart"]["items"] == []
        assert body["submission_state"] == "idle"
        assert body["last_error"] is None

    def test_session_opens_even_if_catalog_fails(self, client, catalog_repo):
        catalog_repo.error = ErpRequestError("ERP error 503", status_code=503)

        body = open_session(client)

        assert body["product_count"] == 0
        assert "ERP error 503" in body["last_error"]

    def test_read_without_session_is_404(self, client):
        response = client.get(f"{BASE}/session")
        assert response.status_code == 404

    def test_close_session(self, client):
        open_session(client)

        assert client.delete(f"{BASE}/session").status_code == 204
        assert client.get(f"{BASE}/session").status_code == 404

    def test_refresh_catalog_failure_is_502(self, client, catalog_repo):
        open_session(client)
        catalog_repo.error = ErpRequestError("timeout")

        response = client.post(f"{BASE}/session/catalog/refresh")

        assert response.status_code == 502


class TestCatalogEndpoints:
    def test_catalog_shows_availability(self, client):
        open_session(client)
        client.post(f"{BASE}/session/lines", json={"item_id": "p1", "item_type": "producto", "quantity": 2})

        body = client.get(f"{BASE}/session/catalog").json()

        assert body["products"][0]["available"] == 3
        assert body["services"][0]["name"] == "Haircut"

    def test_catalog_search(self, client):
        open_session(client)

        body = client.get(f"{BASE}/session/catalog", params={"q": "hair"}).json()

        assert body["products"] == []
        assert [s["id"] for s in body["services"]] == ["s1"]

    def test_customers(self, client):
        open_session(client)

        body = client.get(f"{BASE}/session/customers").json()

        assert body == [{"id": "c1", "name": "Ana Lopez", "email": None}]


class TestCartEndpoints:
    """A full sale driven through the API."""

    def test_add_merge_and_stock_rejection(self, client):
        open_session(client)

        response = client.post(
            f"{BASE}/session/lines", json={"item_id": "p1", "item_type": "producto", "quantity": 3}
        )
        assert response.status_code == 200
        assert Decimal(response.json()["total_price"]) == Decimal("30.00")

        response = client.post(
            f"{BASE}/session/lines", json={"item_id": "p1", "item_type": "producto", "quantity": 4}
        )
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["item_id"] == "p1"
        assert detail["requested"] == 4
        assert detail["available"] == 2

        cart = client.get(f"{BASE}/session").json()["cart"]
        assert cart["items"][0]["quantity"] == 3

    def test_unknown_item_is_404(self, client):
        open_session(client)

        response = client.post(
            f"{BASE}/session/lines", json={"item_id": "zzz", "item_type": "servicio"}
        )

        assert response.status_code == 404

    def test_client_cannot_send_a_price(self, client):
        open_session(client)

        response = client.post(
            f"{BASE}/session/lines",
            json={"item_id": "p1", "item_type": "producto", "precio": 0},
        )

        assert response.status_code == 422

    def test_update_and_remove_lines(self, client):
        open_session(client)
        client.post(f"{BASE}/session/lines", json={"item_id": "p1", "item_type": "producto", "quantity": 3})
        client.post(f"{BASE}/session/lines", json={"item_id": "s1", "item_type": "servicio"})

        response = client.patch(f"{BASE}/session/lines/producto/p1", json={"quantity": 0})
        body = response.json()
        assert [item["item_id"] for item in body["items"]] == ["s1"]
        assert Decimal(body["total_price"]) == Decimal("20.00")

        response = client.patch(f"{BASE}/session/lines/producto/p1", json={"quantity": 1})
        assert response.status_code == 404

        body = client.delete(f"{BASE}/session/lines/servicio/s1").json()
        assert body["items"] == []

    def test_discard_clears_cart_and_selection(self, client):
        open_session(client)
        client.post(f"{BASE}/session/lines", json={"item_id": "s1", "item_type": "servicio"})
        client.put(f"{BASE}/session/selection", json={"payment_method": "tarjeta"})

        client.delete(f"{BASE}/session/lines")

        session = client.get(f"{BASE}/session").json()
        assert session["cart"]["items"] == []
        assert session["selection"]["payment_method"] is None


class TestCheckout:
    def test_checkout_without_payment_method(self, client, sale_repo):
        open_session(client)
        client.post(f"{BASE}/session/lines", json={"item_id": "s1", "item_type": "servicio"})

        response = client.post(f"{BASE}/session/checkout")

        assert response.status_code == 400
        assert response.json()["detail"] == "Select a payment method."
        assert sale_repo.requests == []

    def test_checkout_empty_cart(self, client):
        open_session(client)
        response = client.post(f"{BASE}/session/checkout")
        assert response.status_code == 400

    def test_successful_checkout_resets_and_refetches(self, client, sale_repo, catalog_repo):
        open_session(client)
        client.post(f"{BASE}/session/lines", json={"item_id": "p1", "item_type": "producto", "quantity": 3})
        client.post(f"{BASE}/session/lines", json={"item_id": "s1", "item_type": "servicio"})
        client.put(
            f"{BASE}/session/selection",
            json={"customer_id": "c1", "payment_method": "efectivo", "notes": "  "},
        )
        fetches_before = catalog_repo.product_fetches

        response = client.post(f"{BASE}/session/checkout")

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["sale"]["sale_id"] == "V-100"
        assert body["cart"]["items"] == []
        assert body["catalog_refreshed"] is True
        assert catalog_repo.product_fetches == fetches_before + 1

        sent = sale_repo.requests[0]
        assert sent.cliente_id == "c1"
        assert sent.observaciones is None
        assert [(line.id, line.cantidad) for line in sent.items] == [("p1", 3), ("s1", 1)]

        session = client.get(f"{BASE}/session").json()
        assert session["submission_state"] == "settled"
        assert session["selection"]["customer_id"] is None

    def test_rejected_checkout_keeps_cart(self, client, sale_repo):
        sale_repo.error = ErpRequestError("Stock insuficiente", status_code=400, server_message="Stock insuficiente")
        open_session(client)
        client.post(f"{BASE}/session/lines", json={"item_id": "s1", "item_type": "servicio"})
        client.put(f"{BASE}/session/selection", json={"payment_method": "transferencia"})

        response = client.post(f"{BASE}/session/checkout")

        assert response.status_code == 502
        assert response.json()["detail"] == "Stock insuficiente"
        session = client.get(f"{BASE}/session").json()
        assert len(session["cart"]["items"]) == 1
        assert session["submission_state"] == "failed"
        assert session["last_error"] == "Stock insuficiente"

    def test_unknown_payment_method_is_422(self, client):
        open_session(client)
        response = client.put(f"{BASE}/session/selection", json={"payment_method": "bitcoin"})
        assert response.status_code == 422


class TestAccess:
    def test_view_only_user_cannot_edit(self, client, permission_repo):
        permission_repo.permissions = UserPermissions(permissions={"puede_ver_ventas": True})

        response = client.post(f"{BASE}/session")

        assert response.status_code == 403
        assert response.json()["detail"] == "Sales edit permission required"

    def test_full_access_user(self, client, permission_repo):
        permission_repo.permissions = UserPermissions(has_full_access=True)
        open_session(client)

    def test_permission_lookup_failure_is_502(self, client, permission_repo):
        permission_repo.errors = [ErpRequestError("timeout")]

        response = client.post(f"{BASE}/session")

        assert response.status_code == 502

    def test_forbidden_by_erp_is_passed_through(self, client, permission_repo):
        permission_repo.errors = [ErpRequestError("Forbidden", status_code=403)]

        response = client.get(f"{BASE}/session")

        assert response.status_code == 403

    def test_invalidate_permissions(self, client, permission_repo):
        open_session(client)

        response = client.post(f"/api/v1/businesses/{BUSINESS_ID}/permissions/invalidate")

        assert response.json() == {"invalidated": 1}
        client.get(f"{BASE}/session")
        assert permission_repo.calls == 2


class TestAuthentication:
    """Real bearer-token decoding (no user override)."""

    def test_missing_token(self, client):
        from operix_pos.core.auth import get_current_user
        from operix_pos.main import app

        del app.dependency_overrides[get_current_user]

        response = client.get(f"{BASE}/session")

        assert response.status_code == 401

    def test_valid_token_reaches_route(self, client):
        from operix_pos.core.auth import get_current_user
        from operix_pos.main import app

        del app.dependency_overrides[get_current_user]
        settings = get_settings()
        token = jwt.encode({"sub": "user-9"}, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

        response = client.get(f"{BASE}/session", headers={"Authorization": f"Bearer {token}"})

        # authenticated, but this user has no open session
        assert response.status_code == 404

    def test_health(self, client):
        assert client.get("/").json() == {"status": "ok", "service": "operix-pos"}


class TestMalformedErpReplies:
    def test_non_json_catalog_reply_opens_session_with_error(self, client, catalog_repo):
        catalog_repo.error = ErpResponseFormatError("ERP returned a non-JSON body", status_code=200)

        body = open_session(client)

        assert body["product_count"] == 0
        assert "non-JSON" in body["last_error"]

    def test_non_json_refresh_is_502(self, client, catalog_repo):
        open_session(client)
        catalog_repo.error = ErpResponseFormatError("ERP returned a non-JSON body", status_code=200)

        assert client.post(f"{BASE}/session/catalog/refresh").status_code == 502
