# operix_pos/routers/permissions.py
from fastapi import APIRouter, Depends

from operix_pos.core.auth import CurrentUser, get_current_user
from operix_pos.core.permissions import PermissionService
from operix_pos.dependencies import get_permission_service

router = APIRouter(prefix="/businesses/{business_id}/permissions", tags=["Permissions"])


@router.post("/invalidate")
async def invalidate_permissions(
    business_id: str,
    all_users: bool = False,
    current_user: CurrentUser = Depends(get_current_user),
    permission_service: PermissionService = Depends(get_permission_service),
):
    """
    Drop cached permissions so the next request re-reads them from the ERP.

    - default: only the caller's entry for this business
    - all_users=true: every cached user of this business (e.g. after an
      admin changed someone's rights)
    """
    user_id = None if all_users else current_user.user_id
    removed = permission_service.invalidate(business_id=business_id, user_id=user_id)
    return {"invalidated": removed}
