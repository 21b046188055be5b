"""Authentication package."""
from .session import (
    SessionUser,
    SessionProvider,
    WebSessionProvider,
    create_web_session,
    verify_web_session_token,
    revoke_web_session,
)

__all__ = [
    "SessionUser",
    "SessionProvider",
    "WebSessionProvider",
    "create_web_session",
    "verify_web_session_token",
    "revoke_web_session",
]
