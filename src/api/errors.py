"""Error responses shared by the proxy routes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from fastapi.responses import JSONResponse

from src.services.elevenlabs_client import ElevenLabsAPIError

if TYPE_CHECKING:
    from collections.abc import Awaitable

logger = logging.getLogger(__name__)

MISSING_CONFIG_MESSAGE = "Server missing ElevenLabs configuration"


def error_response(
    status_code: int,
    message: str,
    details: Any = None,
) -> JSONResponse:
    """Build the JSON error body used by every route.

    Args:
        status_code: HTTP status to return.
        message: Short error message.
        details: Optional upstream error body.

    Returns:
        JSONResponse with ``error`` and, when given, ``details``.
    """
    content: dict[str, Any] = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def missing_config_response() -> JSONResponse:
    """Return the 500 sent when ElevenLabs credentials are absent."""
    return error_response(500, MISSING_CONFIG_MESSAGE)


async def proxy_call(
    call: Awaitable[Any],
    *,
    failure_message: str,
) -> Any:
    """Await an upstream call and map its failures to responses.

    Upstream non-2xx statuses are passed through with the parsed
    error body; transport failures become a 500.

    Args:
        call: Awaitable ElevenLabsClient call.
        failure_message: Message used in the error body.

    Returns:
        The upstream JSON result, or a JSONResponse on failure.
    """
    try:
        return await call
    except ElevenLabsAPIError as exc:
        return error_response(exc.status_code, failure_message, exc.details)
    except httpx.HTTPError:
        logger.exception(
            "elevenlabs_transport_error",
            extra={"failure_message": failure_message},
        )
        return error_response(500, f"Unexpected error: {failure_message}")
