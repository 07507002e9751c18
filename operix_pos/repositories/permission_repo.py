# operix_pos/repositories/permission_repo.py
from operix_pos.core.erp_client import ErpAuth, ErpClient
from operix_pos.schemas.permissions import UserPermissions


class PermissionRepository:
    """Reads the caller's permissions for one business from the ERP."""

    def __init__(self, client: ErpClient):
        self.client = client

    async def fetch_permissions(self, auth: ErpAuth, business_id: str) -> UserPermissions:
        data = await self.client.get_json(f"/businesses/{business_id}/permissions", auth)
        return UserPermissions.model_validate(data or {})
