"""Authentication helpers: JWT session tokens and session resolution."""

from autochat.auth.dependencies import SessionUser, get_session_user, resolve_session
from autochat.auth.jwt import TokenPayload, create_session_token, decode_token

__all__ = [
    "SessionUser",
    "TokenPayload",
    "create_session_token",
    "decode_token",
    "get_session_user",
    "resolve_session",
]
