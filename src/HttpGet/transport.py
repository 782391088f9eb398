# === NAVMAP v1 ===
# {
#   "module": "HttpGet.transport",
#   "purpose": "Per-call HTTPX client construction and single-exchange dispatch.",
#   "sections": [
#     {
#       "id": "create-ssl-context",
#       "name": "create_ssl_context",
#       "anchor": "function-create-ssl-context",
#       "kind": "function"
#     },
#     {
#       "id": "create-http-client",
#       "name": "create_http_client",
#       "anchor": "function-create-http-client",
#       "kind": "function"
#     },
#     {
#       "id": "dispatch",
#       "name": "dispatch",
#       "anchor": "function-dispatch",
#       "kind": "function"
#     },
#     {
#       "id": "sni-hostname",
#       "name": "sni_hostname",
#       "anchor": "function-sni-hostname",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""HTTPX transport layer.

Every logical request owns one :class:`httpx.AsyncClient`, created by
:func:`create_http_client` and closed when the request completes (or fails, or
times out), so no connection, decoder or TLS state is shared between calls.

Key design:
- **No auto-redirects**: httpx never follows ``Location``; the engine audits
  every hop itself.
- **Raw bodies**: responses are streamed and read with ``aiter_raw`` so the
  engine, not httpx, decides whether and how to decode them.
- **Per-call trust**: with ``ca`` set, the SSL context trusts exactly those
  anchors; otherwise the certifi bundle. ``trust_env`` is off so proxy and
  certificate environment variables cannot change behaviour behind the
  caller's back.
- **SNI override**: a caller-supplied ``Host`` header on an HTTPS request is
  also used as the TLS server name, so certificates can be verified for a
  virtual host while connecting to an IP address.
"""

from __future__ import annotations

import logging
import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping, Optional, Sequence

import certifi
import httpx

from .instrumentation import create_http_event_hooks
from .policy import FOLLOW_REDIRECTS, UPLOAD_CHUNK_SIZE
from .progress import ProgressCallback, ProgressReporter

logger = logging.getLogger(__name__)

__all__ = ["create_ssl_context", "create_http_client", "dispatch", "sni_hostname"]


def create_ssl_context(ca: Optional[Sequence[str]] = None) -> ssl.SSLContext:
    """Create the SSL context for one logical request.

    Args:
        ca: PEM encoded trust anchors. When given, the peer certificate must
            chain to one of them; the system and certifi stores are ignored.

    Returns:
        Configured :class:`ssl.SSLContext` with hostname checking enabled.
    """

    if ca:
        ctx = ssl.create_default_context(cadata="\n".join(ca))
    else:
        ctx = ssl.create_default_context(cafile=certifi.where())
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def create_http_client(
    *,
    timeout: float,
    connect_timeout: float,
    ca: Optional[Sequence[str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the HTTPX client that carries every hop of one logical request.

    Args:
        timeout: Read/write/pool timeout in seconds.
        connect_timeout: Connect (TCP + TLS handshake) timeout in seconds.
        ca: Optional PEM trust anchors, see :func:`create_ssl_context`.
        transport: Replacement transport, e.g. :class:`httpx.MockTransport`.

    Returns:
        An unopened :class:`httpx.AsyncClient`; use it as an async context manager.
    """

    client = httpx.AsyncClient(
        transport=transport,
        verify=create_ssl_context(ca),
        timeout=httpx.Timeout(timeout, connect=min(connect_timeout, timeout)),
        follow_redirects=FOLLOW_REDIRECTS,
        trust_env=False,
        event_hooks=create_http_event_hooks(),
    )
    logger.debug(
        "HTTPX client created",
        extra={
            "timeout": timeout,
            "connect_timeout": connect_timeout,
            "custom_ca": bool(ca),
            "mock_transport": transport is not None,
        },
    )
    return client


def sni_hostname(host_header: Optional[str]) -> Optional[str]:
    """Return the server name carried by a ``Host`` header value (port removed)."""

    if not host_header:
        return None
    value = host_header.strip()
    if value.startswith("["):
        return value[1:].split("]", 1)[0] or None
    name, _, _ = value.partition(":")
    return name or None


async def _iter_upload(body: bytes, reporter: ProgressReporter) -> AsyncIterator[bytes]:
    view = memoryview(body)
    for offset in range(0, len(body), UPLOAD_CHUNK_SIZE):
        chunk = bytes(view[offset : offset + UPLOAD_CHUNK_SIZE])
        yield chunk
        reporter.advance(len(chunk))


@asynccontextmanager
async def dispatch(
    client: httpx.AsyncClient,
    *,
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: Optional[bytes] = None,
    upload_progress: Optional[ProgressCallback] = None,
) -> AsyncIterator[httpx.Response]:
    """Send one request and yield the streamed response.

    The response headers are available as soon as the context is entered; the
    body has not been read yet. Leaving the context closes the response and
    returns the connection to the per-call client.

    Args:
        client: Client from :func:`create_http_client`.
        method: HTTP method.
        url: Normalised URL without credentials.
        headers: Final request headers (lower-cased names).
        body: Optional request body.
        upload_progress: Optional ``callback(sent, total)`` for the body.

    Raises:
        httpx.HTTPError: Transport failures; the engine classifies them.
    """

    request_headers = dict(headers)
    content: Optional[object] = body
    if body is not None and upload_progress is not None:
        # An explicit length keeps httpx from switching to chunked encoding.
        request_headers["content-length"] = str(len(body))
        content = _iter_upload(body, ProgressReporter(upload_progress, total=len(body)))

    extensions = {}
    if url.startswith("https:"):
        server_name = sni_hostname(request_headers.get("host"))
        if server_name:
            extensions["sni_hostname"] = server_name

    request = client.build_request(
        method,
        url,
        headers=request_headers,
        content=content,
        extensions=extensions,
    )
    response = await client.send(request, stream=True)
    try:
        yield response
    finally:
        await response.aclose()
