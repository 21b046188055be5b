"""Web session utilities (in-memory) and the session collaborator used at checkout."""
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timezone, timedelta
from typing import Dict, Optional

from pydantic import BaseModel

SESSION_LIFETIME = timedelta(days=7)

_web_sessions: Dict[str, dict] = {}


class SessionUser(BaseModel):
    id: str
    username: str = ""
    is_admin: bool = False


def create_web_session(user_id: str, username: str = "", is_admin: bool = False) -> str:
    """Create a new web session and return the token."""
    session_token = secrets.token_urlsafe(32)
    now = datetime.now(timezone.utc)
    _web_sessions[session_token] = {
        "user_id": str(user_id),
        "username": username,
        "is_admin": is_admin,
        "created_at": now.isoformat(),
        "expires_at": (now + SESSION_LIFETIME).isoformat(),
    }
    return session_token


def verify_web_session_token(token: str | None) -> Optional[dict]:
    """Verify a web session token and return session data."""
    if not token:
        return None
    session = _web_sessions.get(token)
    if not session:
        return None

    expires_at = datetime.fromisoformat(session["expires_at"])
    if datetime.now(timezone.utc) > expires_at:
        del _web_sessions[token]
        return None

    return session


def revoke_web_session(token: str) -> None:
    """Log out: forget the token."""
    _web_sessions.pop(token, None)


class SessionProvider(ABC):
    """Answers "is a user currently authenticated, and who"."""

    @abstractmethod
    def current_user(self) -> Optional[SessionUser]:
        pass


class WebSessionProvider(SessionProvider):
    """Session backed by a web session token; the token may be set after login."""

    def __init__(self, token: str | None = None):
        self.token = token

    def current_user(self) -> Optional[SessionUser]:
        session = verify_web_session_token(self.token)
        if session is None:
            return None
        return SessionUser(
            id=session["user_id"],
            username=session.get("username") or "",
            is_admin=bool(session.get("is_admin")),
        )
