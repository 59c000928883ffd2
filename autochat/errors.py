"""Chat error taxonomy with fixed HTTP status codes and user-facing messages."""

import logging
from typing import Optional

from fastapi.responses import JSONResponse

from autochat.api.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

STATUS_BY_TYPE: dict[str, int] = {
    "bad_request": 400,
    "unauthorized": 401,
    "forbidden": 403,
    "not_found": 404,
    "rate_limit": 429,
    "offline": 503,
    "internal_server_error": 500,
}

MESSAGES_BY_CODE: dict[str, str] = {
    "bad_request:api": "The request couldn't be processed. Please check your input and try again.",
    "rate_limit:chat": (
        "You have exceeded your maximum number of messages for the day. "
        "Please try again later."
    ),
    "not_found:chat": (
        "The requested chat was not found. Please check the chat ID and try again."
    ),
    "forbidden:chat": (
        "This chat belongs to another user. Please check the chat ID and try again."
    ),
    "unauthorized:chat": "You need to sign in to view this chat. Please sign in and try again.",
    "internal_server_error:api": "An unexpected error occurred. Please try again later.",
}

_GENERIC_MESSAGE = "Something went wrong. Please try again later."


class ChatError(Exception):
    """Request-level failure identified by a stable ``<type>:<surface>`` code.

    Raised before streaming starts; converted to a JSON error body with the
    status code fixed by the error type.
    """

    def __init__(self, code: str, cause: Optional[str] = None) -> None:
        error_type, _, surface = code.partition(":")
        if error_type not in STATUS_BY_TYPE or not surface:
            raise ValueError(f"Unknown chat error code: {code}")
        self.code: str = code
        self.type: str = error_type
        self.surface: str = surface
        self.cause: Optional[str] = cause
        self.message: str = MESSAGES_BY_CODE.get(code, _GENERIC_MESSAGE)
        self.status_code: int = STATUS_BY_TYPE[error_type]
        super().__init__(self.message)

    def to_response(self, request_id: Optional[str] = None) -> JSONResponse:
        """Render the error as a JSON response with its fixed status code."""
        logger.info(
            "chat_error_response: code=%s, status=%d, request_id=%s",
            self.code,
            self.status_code,
            request_id,
        )
        body = ErrorResponse(
            code=self.code,
            message=self.message,
            cause=self.cause,
            request_id=request_id,
        )
        return JSONResponse(status_code=self.status_code, content=body.model_dump())
