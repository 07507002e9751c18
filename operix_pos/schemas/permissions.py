# operix_pos/schemas/permissions.py
from typing import Any

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel


class UserPermissions(SQLModel):
    """
    Permissions of one user inside one business, as served by
    GET /businesses/{business_id}/permissions.

    `permissions` holds flags named puede_<action>_<resource>, e.g.
    puede_ver_ventas, puede_editar_ventas, puede_eliminar_productos.
    A user with has_full_access passes every check.
    """

    model_config = ConfigDict(extra="ignore")

    user_id: str | None = None
    business_id: str | None = None
    role: str | None = None
    is_creator: bool = False
    is_admin: bool = False
    has_full_access: bool = False
    permissions: dict[str, bool | None] = {}

    @field_validator("user_id", "business_id", mode="before")
    @classmethod
    def id_as_str(cls, v: Any) -> str | None:
        return None if v is None else str(v)

    def _flag(self, action: str, resource: str) -> bool:
        if self.has_full_access:
            return True
        return bool(self.permissions.get(f"puede_{action}_{resource}", False))

    def can_view(self, resource: str) -> bool:
        return self._flag("ver", resource)

    def can_edit(self, resource: str) -> bool:
        return self._flag("editar", resource)

    def can_delete(self, resource: str) -> bool:
        return self._flag("eliminar", resource)

    def can_assign(self, resource: str) -> bool:
        return self._flag("asignar", resource)

    def full_access(self) -> bool:
        return self.has_full_access
