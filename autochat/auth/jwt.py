"""JWT session token handling."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from autochat.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPayload:
    """Decoded session token payload."""

    sub: UUID
    user_type: str
    exp: datetime


def create_session_token(
    settings: Settings,
    user_id: UUID,
    user_type: str,
    expires_in: timedelta = timedelta(days=30),
) -> str:
    """
    Create a signed session token.

    Session issuance belongs to the auth service; this exists for tooling
    and tests that need a valid token.

    Args:
        settings: Settings carrying the JWT secret and algorithm
        user_id: User UUID to encode in token
        user_type: Entitlement tier ("guest" or "regular")
        expires_in: Token lifetime

    Returns:
        Signed JWT string

    Raises:
        ValueError: If jwt_secret_key is not configured
    """
    if not settings.jwt_secret_key:
        raise ValueError("jwt_secret_key must be configured in settings")

    exp = datetime.now(timezone.utc) + expires_in
    payload = {"sub": str(user_id), "type": user_type, "exp": exp}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(settings: Settings, token: str) -> TokenPayload:
    """
    Decode and validate a session token.

    Args:
        settings: Settings carrying the JWT secret and algorithm
        token: JWT token string to decode

    Returns:
        TokenPayload with user id, tier, and expiry

    Raises:
        ValueError: If token is expired, invalid, or malformed
    """
    if not settings.jwt_secret_key:
        raise ValueError("jwt_secret_key must be configured in settings")

    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return TokenPayload(
            sub=UUID(payload["sub"]),
            user_type=str(payload.get("type") or "guest"),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except ExpiredSignatureError as e:
        logger.warning(f"token_expired: error={str(e)}")
        raise ValueError("Token has expired") from e
    except JWTError as e:
        logger.warning(f"token_invalid: error={str(e)}")
        raise ValueError("Invalid token") from e
    except (KeyError, ValueError, TypeError) as e:
        logger.warning(f"token_parse_error: error={str(e)}")
        raise ValueError("Invalid token") from e
