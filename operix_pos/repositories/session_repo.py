# operix_pos/repositories/session_repo.py
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from operix_pos.services.pos_service import PosSession

SessionKey = tuple[str, str]  # (business_id, user_id)


class PosSessionRepository:
    """
    In-memory store of open sale sessions, one per (business, user).

    Nothing is persisted: a process restart or an abandoned session
    simply drops the cart, and the ERP is never notified.
    """

    def __init__(self) -> None:
        self._sessions: dict[SessionKey, "PosSession"] = {}

    def get(self, business_id: str, user_id: str) -> "PosSession | None":
        return self._sessions.get((business_id, user_id))

    def put(self, user_id: str, session: "PosSession") -> "PosSession":
        self._sessions[(session.business_id, user_id)] = session
        return session

    def delete(self, business_id: str, user_id: str) -> bool:
        return self._sessions.pop((business_id, user_id), None) is not None

    def count(self) -> int:
        return len(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()
