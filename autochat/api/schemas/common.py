"""Common API schemas shared across endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response.

    Args:
        code: Machine-readable ``<type>:<surface>`` code (e.g., "rate_limit:chat")
        message: Human-readable error description
        cause: Optional extra context about what failed
        request_id: Optional request ID for tracing
    """

    code: str
    message: str
    cause: Optional[str] = None
    request_id: Optional[str] = None


class ServiceStatus(BaseModel):
    """Service health status information.

    Args:
        status: Service status ("connected", "unavailable", "not_configured", "error")
        latency_ms: Optional response latency in milliseconds
        error: Optional error message if service is unhealthy
    """

    status: str
    latency_ms: Optional[float] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response with service status.

    Args:
        status: Overall health status ("ok", "degraded", "error")
        version: Application version
        services: Dictionary of service statuses (e.g., {"database": ServiceStatus})
    """

    status: str
    version: str = "0.1.0"
    services: dict[str, ServiceStatus] = Field(default_factory=dict)
