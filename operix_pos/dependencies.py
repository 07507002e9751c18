# operix_pos/dependencies.py
from functools import lru_cache
from typing import Literal

from fastapi import Depends, Header, HTTPException, status

from operix_pos.core.auth import CurrentUser, get_current_user
from operix_pos.core.config import get_settings
from operix_pos.core.erp_client import ErpAuth, get_erp_client
from operix_pos.core.errors import ErpRequestError
from operix_pos.core.permissions import PermissionCache, PermissionService
from operix_pos.repositories.catalog_repo import CatalogRepository
from operix_pos.repositories.permission_repo import PermissionRepository
from operix_pos.repositories.sale_repo import SaleRepository
from operix_pos.repositories.session_repo import PosSessionRepository
from operix_pos.services.catalog_service import CatalogSnapshotService
from operix_pos.services.pos_service import PosService

# Permission resource guarding the sale screens.
SALES_RESOURCE = "ventas"


@lru_cache
def get_pos_service() -> PosService:
    """
    Process-wide POS service (sessions live in its in-memory repository).

    Tests replace it through app.dependency_overrides.
    """
    client = get_erp_client()
    return PosService(
        sessions=PosSessionRepository(),
        catalog=CatalogSnapshotService(CatalogRepository(client)),
        sales=SaleRepository(client),
    )


@lru_cache
def get_permission_service() -> PermissionService:
    settings = get_settings()
    return PermissionService(
        repo=PermissionRepository(get_erp_client()),
        cache=PermissionCache(ttl_seconds=settings.PERMISSION_CACHE_TTL_SECONDS),
        retries=settings.PERMISSION_FETCH_RETRIES,
    )


def get_erp_auth(
    current_user: CurrentUser = Depends(get_current_user),
    x_branch_id: str | None = Header(default=None),
) -> ErpAuth:
    """
    Credentials for calls made to the ERP on behalf of the caller.
    The optional X-Branch-Id header is forwarded as-is.
    """
    return ErpAuth(token=current_user.token, branch_id=x_branch_id)


def require_sales_permission(action: Literal["view", "edit"]):
    """
    Build a guard dependency for the sales resource.

      - "view": puede_ver_ventas (or full access)
      - "edit": puede_editar_ventas (or full access)

    The POS engine does no authorization of its own; routes are simply
    unreachable without the permission.
    """

    async def guard(
        business_id: str,
        current_user: CurrentUser = Depends(get_current_user),
        auth: ErpAuth = Depends(get_erp_auth),
        permissions: PermissionService = Depends(get_permission_service),
    ) -> CurrentUser:
        try:
            perms = await permissions.get_permissions(auth, business_id, current_user.user_id)
        except ErpRequestError as e:
            if e.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
                raise HTTPException(status_code=e.status_code, detail=e.message)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Could not verify permissions: {e.message}",
            )

        if action == "view":
            allowed = perms.can_view(SALES_RESOURCE)
        else:
            allowed = perms.can_edit(SALES_RESOURCE)

        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Sales {action} permission required",
            )
        return current_user

    return guard


require_sales_view = require_sales_permission("view")
require_sales_edit = require_sales_permission("edit")
