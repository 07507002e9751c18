# operix_pos/core/permissions.py
import logging
import time
from dataclasses import dataclass
from typing import Callable

from operix_pos.core.erp_client import ErpAuth
from operix_pos.core.errors import ErpRequestError
from operix_pos.repositories.permission_repo import PermissionRepository
from operix_pos.schemas.permissions import UserPermissions

logger = logging.getLogger(__name__)

PermissionKey = tuple[str, str]  # (business_id, user_id)

# Statuses for which a retry cannot help.
NO_RETRY_STATUSES = {401, 403}


@dataclass
class _Entry:
    value: UserPermissions
    expires_at: float


class PermissionCache:
    """
    Keyed cache of user permissions with an explicit time-to-live.

    - key: (business_id, user_id)
    - entries older than ttl_seconds are treated as missing
    - invalidate() drops one user, one business, or everything
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[PermissionKey, _Entry] = {}

    def get(self, key: PermissionKey) -> UserPermissions | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self.clock():
            del self._entries[key]
            return None
        return entry.value

    def put(self, key: PermissionKey, value: UserPermissions) -> None:
        now = self.clock()
        self._sweep(now)
        self._entries[key] = _Entry(value=value, expires_at=now + self.ttl_seconds)

    def _sweep(self, now: float) -> None:
        """Drop every expired entry, read or not."""
        for key in [k for k, e in self._entries.items() if e.expires_at <= now]:
            del self._entries[key]

    def invalidate(self, business_id: str | None = None, user_id: str | None = None) -> int:
        """
        Drop cached entries matching the given filters (None matches all).
        Returns the number of entries removed.
        """
        doomed = [
            key
            for key in self._entries
            if (business_id is None or key[0] == business_id)
            and (user_id is None or key[1] == user_id)
        ]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)


class PermissionService:
    """
    Resolves permissions through the cache, fetching from the ERP on miss.

    Failed fetches are retried up to `retries` extra times, except for
    401/403 answers which are final.
    """

    def __init__(self, repo: PermissionRepository, cache: PermissionCache, retries: int = 2):
        self.repo = repo
        self.cache = cache
        self.retries = retries

    async def get_permissions(
        self,
        auth: ErpAuth,
        business_id: str,
        user_id: str,
    ) -> UserPermissions:
        key = (business_id, user_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        logger.info(f"Permission cache miss for user {user_id} in business {business_id}")
        attempt = 0
        while True:
            try:
                permissions = await self.repo.fetch_permissions(auth, business_id)
                break
            except ErpRequestError as e:
                if e.status_code in NO_RETRY_STATUSES or attempt >= self.retries:
                    raise
                attempt += 1
                logger.warning(
                    f"Permission fetch failed ({e.message}), retry {attempt}/{self.retries}"
                )

        self.cache.put(key, permissions)
        return permissions

    def invalidate(self, business_id: str | None = None, user_id: str | None = None) -> int:
        return self.cache.invalidate(business_id, user_id)
