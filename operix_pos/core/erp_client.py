# operix_pos/core/erp_client.py
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import httpx

from operix_pos.core.config import get_settings
from operix_pos.core.errors import ErpRequestError, ErpResponseFormatError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErpAuth:
    """
    Per-request credentials forwarded to the ERP.

    branch_id is sent as X-Branch-Id when the caller works inside a
    specific branch of the business.
    """

    token: str
    branch_id: str | None = None

    def headers(self) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self.token}"}
        if self.branch_id:
            headers["X-Branch-Id"] = self.branch_id
        return headers


def extract_error_message(payload: Any, default: str) -> str:
    """
    Pull a human-readable message out of an ERP error body.

    Handles the shapes the ERP (FastAPI) produces:
      - {"detail": "text"}
      - {"detail": [{"loc": [..., "field"], "msg": "..."}]}  (422 validation)
      - {"detail": {"msg": "..."}} / {"detail": {"error_type", "message"}}
      - {"message": "text"}
    """
    if not isinstance(payload, dict):
        return default

    detail = payload.get("detail")
    if isinstance(detail, str) and detail:
        return detail
    if isinstance(detail, list) and detail:
        parts: list[str] = []
        for err in detail:
            if isinstance(err, dict) and err.get("msg"):
                loc = err.get("loc") or []
                field = loc[-1] if len(loc) > 1 else ""
                parts.append(f"{field}: {err['msg']}" if field else str(err["msg"]))
            else:
                parts.append(str(err))
        return ", ".join(parts)
    if isinstance(detail, dict):
        if detail.get("msg"):
            return str(detail["msg"])
        if detail.get("error_type"):
            return str(detail.get("message") or detail["error_type"])
        return str(detail)

    message = payload.get("message")
    if isinstance(message, str) and message:
        return message
    return default


class ErpClient:
    """
    Thin async wrapper over httpx for the ERP REST API.

    - All paths are relative to ERP_API_URL (which already ends in /api/v1).
    - Non-2xx answers and transport failures become ErpRequestError,
      carrying the server message when one can be extracted.
    - No retries here; callers decide.
    """

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def get_json(
        self,
        path: str,
        auth: ErpAuth,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return await self._request("GET", path, auth, params=params)

    async def post_json(self, path: str, auth: ErpAuth, body: dict[str, Any]) -> Any:
        return await self._request("POST", path, auth, json=body)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request(self, method: str, path: str, auth: ErpAuth, **kwargs: Any) -> Any:
        try:
            response = await self.http.request(method, path, headers=auth.headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"ERP {method} {path} failed: {e!r}")
            raise ErpRequestError(str(e) or "ERP unreachable") from e

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            server_message = extract_error_message(payload, default="")
            message = server_message or f"ERP error {response.status_code}"
            logger.warning(f"ERP {method} {path} -> {response.status_code}: {message}")
            raise ErpRequestError(
                message,
                status_code=response.status_code,
                server_message=server_message or None,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"ERP {method} {path} -> {response.status_code} with a non-JSON body")
            raise ErpResponseFormatError(
                "ERP returned a non-JSON body",
                status_code=response.status_code,
            ) from e


@lru_cache
def get_erp_client() -> ErpClient:
    """
    Shared ERP client (one connection pool per process).

    Closed by the app lifespan on shutdown.
    """
    settings = get_settings()
    http = httpx.AsyncClient(
        base_url=settings.ERP_API_URL,
        headers={"Content-Type": "application/json"},
        timeout=settings.ERP_TIMEOUT_SECONDS,
    )
    return ErpClient(http)
