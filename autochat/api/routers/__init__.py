"""FastAPI routers for the chat API."""

from autochat.api.routers.chat import router as chat_router
from autochat.api.routers.health import router as health_router

__all__ = ["chat_router", "health_router"]
