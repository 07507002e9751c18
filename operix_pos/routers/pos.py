# operix_pos/routers/pos.py
from fastapi import APIRouter, Depends, status

from operix_pos.core.auth import CurrentUser
from operix_pos.core.erp_client import ErpAuth
from operix_pos.dependencies import (
    get_erp_auth,
    get_pos_service,
    require_sales_edit,
    require_sales_view,
)
from operix_pos.schemas.cart import CartLineCreate, CartLineUpdate, CartSummary
from operix_pos.schemas.catalog import CatalogRead, CustomerRead, ItemType
from operix_pos.schemas.sale import CheckoutRead, PosSessionRead, SaleSelection, SaleSelectionUpdate
from operix_pos.services.pos_service import PosService

router = APIRouter(prefix="/businesses/{business_id}/pos", tags=["POS"])


# -------- Session lifecycle --------


@router.post(
    "/session",
    response_model=PosSessionRead,
    status_code=status.HTTP_201_CREATED,
)
async def open_session(
    business_id: str,
    auth: ErpAuth = Depends(get_erp_auth),
    current_user: CurrentUser = Depends(require_sales_edit),
    service: PosService = Depends(get_pos_service),
):
    """
    Open a fresh sale (empty cart) and load catalog + customers.

    Replaces any session the user already had for this business.
    """
    session = await service.open_session(auth, business_id, current_user.user_id)
    return session.to_read()


@router.get("/session", response_model=PosSessionRead)
async def read_session(
    business_id: str,
    current_user: CurrentUser = Depends(require_sales_view),
    service: PosService = Depends(get_pos_service),
):
    """
    Current cart, checkout selection and submission state.
    """
    return service.get_session(business_id, current_user.user_id).to_read()


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    business_id: str,
    current_user: CurrentUser = Depends(require_sales_edit),
    service: PosService = Depends(get_pos_service),
):
    """
    Abandon the sale. The cart is discarded; the ERP is not notified.
    """
    service.close_session(business_id, current_user.user_id)


# -------- Catalog --------


@router.get("/session/catalog", response_model=CatalogRead)
async def read_catalog(
    business_id: str,
    q: str | None = None,
    current_user: CurrentUser = Depends(require_sales_view),
    service: PosService = Depends(get_pos_service),
):
    """
    Products and services of the session snapshot.

    - q: optional case-insensitive search on name/description
    - each product carries `available` = stock minus units in the cart
    """
    return service.get_session(business_id, current_user.user_id).catalog_view(q)


@router.get("/session/customers", response_model=list[CustomerRead])
async def read_customers(
    business_id: str,
    current_user: CurrentUser = Depends(require_sales_view),
    service: PosService = Depends(get_pos_service),
):
    return service.get_session(business_id, current_user.user_id).customer_view()


@router.post("/session/catalog/refresh", response_model=PosSessionRead)
async def refresh_catalog(
    business_id: str,
    auth: ErpAuth = Depends(get_erp_auth),
    current_user: CurrentUser = Depends(require_sales_view),
    service: PosService = Depends(get_pos_service),
):
    """
    Re-fetch the catalog. Lines already in the cart keep their frozen
    prices and stock ceilings.
    """
    session = service.get_session(business_id, current_user.user_id)
    await session.load(auth)
    return session.to_read()


# -------- Cart lines --------


@router.post("/session/lines", response_model=CartSummary)
async def add_line(
    business_id: str,
    payload: CartLineCreate,
    current_user: CurrentUser = Depends(require_sales_edit),
    service: PosService = Depends(get_pos_service),
):
    """
    Add an item (or merge into its existing line).

    400 if the cart would hold more than the catalog stock.
    """
    session = service.get_session(business_id, current_user.user_id)
    session.add(payload.item_type, payload.item_id, payload.quantity)
    return session.summary()


@router.patch("/session/lines/{item_type}/{item_id}", response_model=CartSummary)
async def update_line(
    business_id: str,
    item_type: ItemType,
    item_id: str,
    payload: CartLineUpdate,
    current_user: CurrentUser = Depends(require_sales_edit),
    service: PosService = Depends(get_pos_service),
):
    """
    Set a line's quantity; 0 removes the line.
    """
    session = service.get_session(business_id, current_user.user_id)
    session.set_quantity(item_type, item_id, payload.quantity)
    return session.summary()


@router.delete("/session/lines/{item_type}/{item_id}", response_model=CartSummary)
async def remove_line(
    business_id: str,
    item_type: ItemType,
    item_id: str,
    current_user: CurrentUser = Depends(require_sales_edit),
    service: PosService = Depends(get_pos_service),
):
    session = service.get_session(business_id, current_user.user_id)
    session.remove(item_type, item_id)
    return session.summary()


@router.delete("/session/lines", response_model=CartSummary)
async def discard_cart(
    business_id: str,
    current_user: CurrentUser = Depends(require_sales_edit),
    service: PosService = Depends(get_pos_service),
):
    """
    Empty the cart and clear customer / payment selection.
    """
    session = service.get_session(business_id, current_user.user_id)
    session.discard()
    return session.summary()


# -------- Checkout --------


@router.put("/session/selection", response_model=SaleSelection)
async def update_selection(
    business_id: str,
    payload: SaleSelectionUpdate,
    current_user: CurrentUser = Depends(require_sales_edit),
    service: PosService = Depends(get_pos_service),
):
    session = service.get_session(business_id, current_user.user_id)
    return session.select(payload.customer_id, payload.payment_method, payload.notes)


@router.post("/session/checkout", response_model=CheckoutRead)
async def checkout(
    business_id: str,
    auth: ErpAuth = Depends(get_erp_auth),
    current_user: CurrentUser = Depends(require_sales_edit),
    service: PosService = Depends(get_pos_service),
):
    """
    Record the sale in the ERP.

      - 400: empty cart / no payment method (nothing sent)
      - 409: a checkout is already in flight for this cart
      - 502: the ERP rejected the sale; the cart is kept for a retry
    """
    session = service.get_session(business_id, current_user.user_id)
    return await session.checkout(auth)
