# === NAVMAP v1 ===
# {
#   "module": "HttpGet.instrumentation",
#   "purpose": "HTTPX event hooks emitting per-exchange telemetry records.",
#   "sections": [
#     {
#       "id": "create-http-event-hooks",
#       "name": "create_http_event_hooks",
#       "anchor": "function-create-http-event-hooks",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTP network layer instrumentation and telemetry.

Emits one ``http-get-response`` log record per exchange made by the HTTPX
client, capturing method, redacted URL, status and time to response headers.
"""

import logging
import time
from typing import Any

from .logging_utils import redact_url

logger = logging.getLogger(__name__)


def create_http_event_hooks() -> dict:
    """Create async HTTPX event hooks for telemetry emission.

    Returns:
        Dict with 'request' and 'response' hooks for an ``httpx.AsyncClient``

    Usage:
        >>> import httpx
        >>> hooks = create_http_event_hooks()
        >>> client = httpx.AsyncClient(event_hooks=hooks)
    """
    request_start_time: dict[int, float] = {}

    async def on_request(request: Any) -> None:
        """Called when request starts."""
        request_start_time[id(request)] = time.perf_counter()

    async def on_response(response: Any) -> None:
        """Called once response headers have arrived."""
        start_time = request_start_time.pop(id(response.request), None)
        if start_time is None:
            return

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "http-get-response",
            extra={
                "method": response.request.method,
                "url_redacted": redact_url(str(response.request.url), strip_query=True),
                "host": response.request.url.host or "unknown",
                "status": response.status_code,
                "http_version": response.http_version,
                "content_encoding": response.headers.get("content-encoding"),
                "ttfb_ms": round(elapsed_ms, 3),
            },
        )

    return {
        "request": [on_request],
        "response": [on_response],
    }


__all__ = [
    "create_http_event_hooks",
]
