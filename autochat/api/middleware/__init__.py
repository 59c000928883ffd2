"""API middleware for request/response processing."""

from autochat.api.middleware.error_handler import chat_error_handler, error_handling_middleware
from autochat.api.middleware.observability import RequestLoggingMiddleware
from autochat.api.middleware.request_id import RequestIdMiddleware

__all__ = [
    "chat_error_handler",
    "error_handling_middleware",
    "RequestIdMiddleware",
    "RequestLoggingMiddleware",
]
