from dataclasses import dataclass
from typing import Callable, Dict, Optional
import secrets
import time


@dataclass
class AdminSession:
    authenticated: bool
    last_seen: float


class SessionStore:
    """Process-held admin sessions keyed by the session cookie value.

    A session expires once it has been idle for ``max_age_seconds``; each
    successful lookup restarts the idle window.
    """

    def __init__(self, max_age_seconds: int = 300, clock: Callable[[], float] = time.monotonic):
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._sessions: Dict[str, AdminSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, authenticated: bool = True) -> str:
        now = self._clock()
        self._sweep(now)
        session_id = secrets.token_urlsafe(32)
        self._sessions[session_id] = AdminSession(authenticated=authenticated, last_seen=now)
        return session_id

    def _sweep(self, now: float) -> None:
        for session_id, session in list(self._sessions.items()):
            if now - session.last_seen > self.max_age_seconds:
                self._sessions.pop(session_id, None)

    def get(self, session_id: Optional[str]) -> Optional[AdminSession]:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None:
            return None
        now = self._clock()
        if now - session.last_seen > self.max_age_seconds:
            self._sessions.pop(session_id, None)
            return None
        session.last_seen = now
        return session

    def is_authenticated(self, session_id: Optional[str]) -> bool:
        session = self.get(session_id)
        return session is not None and session.authenticated

    def destroy(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        return self._sessions.pop(session_id, None) is not None
