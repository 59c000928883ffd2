"""Session resolution for chat requests."""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request

from autochat.api.dependencies import get_settings
from autochat.auth.jwt import decode_token
from autochat.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """Authenticated caller.

    Attributes:
        user_id: Caller's user UUID.
        user_type: Entitlement tier of the caller.
    """

    user_id: UUID
    user_type: str


def resolve_session(request: Request, settings: Settings) -> Optional[SessionUser]:
    """
    Resolve the caller from the ``Authorization: Bearer <jwt>`` header.

    Never raises: a missing, malformed, expired, or invalid token yields None
    and the caller decides which error to report.

    Args:
        request: Incoming request
        settings: Settings carrying the JWT configuration

    Returns:
        SessionUser, or None when there is no valid session
    """
    authorization = request.headers.get("Authorization")
    if not authorization:
        logger.debug("resolve_session: reason=missing_authorization_header")
        return None

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("resolve_session_error: reason=malformed_authorization_header")
        return None

    try:
        payload = decode_token(settings, parts[1])
    except ValueError as e:
        logger.warning(f"resolve_session_error: reason=jwt_decode_failed, error={str(e)}")
        return None

    logger.info(f"resolve_session_success: user_id={payload.sub}, user_type={payload.user_type}")
    return SessionUser(user_id=payload.sub, user_type=payload.user_type)


async def get_session_user(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Optional[SessionUser]:
    """FastAPI dependency wrapper around resolve_session()."""
    return resolve_session(request, settings)
