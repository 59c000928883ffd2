"""Current weather lookup via the Open-Meteo forecast API."""

import json
import logging

import httpx
from pydantic_ai import RunContext

from autochat.dependencies import ChatDependencies
from autochat.tools.result import ToolInvocationResult

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"


async def get_weather(
    ctx: RunContext[ChatDependencies],
    latitude: float,
    longitude: float,
) -> ToolInvocationResult:
    """
    Get the current weather at a location.

    Args:
        ctx: Agent runtime context with dependencies
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees

    Returns:
        Forecast JSON, or an error message if the lookup fails
    """
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": "temperature_2m",
        "hourly": "temperature_2m",
        "daily": "sunrise,sunset",
        "timezone": "auto",
    }
    try:
        response = await ctx.deps.http_client.get(OPEN_METEO_URL, params=params, timeout=15.0)
    except httpx.HTTPError as e:
        logger.error(f"get_weather_request_error: error={str(e)}")
        return ToolInvocationResult(result=f"Error: Weather request failed - {str(e)}", is_error=True)

    if response.status_code >= 400:
        logger.warning(f"get_weather_http_error: status={response.status_code}")
        return ToolInvocationResult(
            result=f"Error: HTTP {response.status_code} - {response.reason_phrase}", is_error=True
        )

    try:
        data = response.json()
    except ValueError:
        return ToolInvocationResult(result="Error: Weather service returned invalid JSON", is_error=True)

    logger.info(f"get_weather_success: latitude={latitude}, longitude={longitude}")
    return ToolInvocationResult(result=json.dumps(data))
