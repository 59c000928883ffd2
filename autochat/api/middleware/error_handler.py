"""Error handling for chat API requests."""

import logging
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from autochat.errors import ChatError

logger = logging.getLogger(__name__)


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Exception handler rendering a ChatError with its fixed status code."""
    return exc.to_response(getattr(request.state, "request_id", None))


async def error_handling_middleware(request: Request, call_next: Callable) -> Response:
    """
    Map exceptions escaping the routes to structured JSON errors.

    - ChatError → its own status and code
    - Exception → internal_server_error:api (500)

    Errors raised after a streaming response has started are reported
    in-band by the stream itself and never reach this middleware.

    Args:
        request: Incoming FastAPI request
        call_next: Next middleware/handler in chain

    Returns:
        Response object (either success or error JSON)
    """
    request_id = getattr(request.state, "request_id", None)

    try:
        response: Response = await call_next(request)
        return response

    except ChatError as e:
        logger.info(
            f"chat_error: path={request.url.path}, code={e.code}, request_id={request_id}"
        )
        return e.to_response(request_id)

    except Exception as e:
        logger.exception(
            f"internal_error: path={request.url.path}, error={str(e)}, request_id={request_id}"
        )
        return ChatError("internal_server_error:api").to_response(request_id)
