# === NAVMAP v1 ===
# {
#   "module": "HttpGet.errors",
#   "purpose": "Exception hierarchy and classification of transport failures.",
#   "sections": [
#     {
#       "id": "httpgeterror",
#       "name": "HttpGetError",
#       "anchor": "class-httpgeterror",
#       "kind": "class"
#     },
#     {
#       "id": "configurationerror",
#       "name": "ConfigurationError",
#       "anchor": "class-configurationerror",
#       "kind": "class"
#     },
#     {
#       "id": "clienterror",
#       "name": "ClientError",
#       "anchor": "class-clienterror",
#       "kind": "class"
#     },
#     {
#       "id": "classify-exception",
#       "name": "classify_exception",
#       "anchor": "function-classify-exception",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Exception hierarchy shared by the request engine.

Failures fall into two channels. Configuration problems are detected while the
request options are built and raise :class:`ConfigurationError` synchronously,
before any network activity. Everything that happens once the exchange is under
way (resolution, connection, TLS, decoding, size limits, redirect loops,
timeouts) surfaces as a :class:`ClientError` that carries the URL that was
attempted and a stable ``code`` drawn from the network-stack vocabulary
(``ENOTFOUND``, ``ECONNREFUSED``, ...).

:func:`classify_exception` is the single place where low-level exceptions from
httpx, ``ssl``, ``socket`` or ``zlib`` are mapped onto that vocabulary.
"""

from __future__ import annotations

import errno
import socket
import ssl
import zlib
from typing import Iterator, List, Optional, Sequence, Tuple

import httpx

__all__ = [
    "HttpGetError",
    "ConfigurationError",
    "ClientError",
    "InvalidURL",
    "TooManyRedirects",
    "MaxBodyExceeded",
    "RequestTimeout",
    "DecodeError",
    "classify_exception",
]


class HttpGetError(RuntimeError):
    """Base exception for every failure raised by the request engine."""


class ConfigurationError(HttpGetError):
    """Raised synchronously when request options are invalid."""


class ClientError(HttpGetError):
    """Failure of a dispatched request.

    Attributes:
        url: The request URL that was attempted.
        code: Stable error code, e.g. ``ENOTFOUND`` or ``ECONNREFUSED``.
        cause: The underlying exception, when there is one.
    """

    default_code = "EREQUEST"

    def __init__(
        self,
        message: str,
        *,
        url: str,
        code: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.code = code or self.default_code
        self.cause = cause

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, url={self.url!r})"


class InvalidURL(ClientError):
    """The URL (or a redirect target) cannot be dispatched."""

    default_code = "EINVALIDURL"


class TooManyRedirects(ClientError):
    """Redirect chain exceeded the configured hop limit."""

    default_code = "EMAXREDIRECTS"

    def __init__(
        self,
        max_redirects: int,
        hops: Sequence[Tuple[str, int]],
        *,
        url: str,
    ) -> None:
        self.max_redirects = max_redirects
        self.hops = tuple(hops)
        trail = " → ".join(f"{hop_url} ({status})" for hop_url, status in self.hops)
        super().__init__(
            f"Redirect chain exceeded {max_redirects} hops. Hops: {trail}",
            url=url,
        )


class MaxBodyExceeded(ClientError):
    """Response body grew beyond ``max_body`` bytes."""

    default_code = "EMAXBODY"

    def __init__(self, limit: int, *, url: str, received: Optional[int] = None) -> None:
        self.limit = limit
        self.received = received
        detail = f" (got {received} bytes)" if received is not None else ""
        super().__init__(
            f"Response body exceeds the maximum of {limit} bytes{detail}",
            url=url,
        )


class RequestTimeout(ClientError):
    """The request did not complete within its timeout."""

    default_code = "ETIMEDOUT"


class DecodeError(ClientError):
    """The compressed response payload could not be inflated."""

    default_code = "Z_DATA_ERROR"


_RESOLUTION_MESSAGES = (
    "name or service not known",
    "nodename nor servname provided",
    "temporary failure in name resolution",
    "no address associated with hostname",
    "getaddrinfo failed",
)


def _iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Walk ``exc``, its explicit/implicit causes and any grouped exceptions."""

    seen: set[int] = set()
    pending: List[BaseException] = [exc]
    while pending:
        current = pending.pop(0)
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        grouped = getattr(current, "exceptions", None)
        if isinstance(grouped, (list, tuple)):
            pending.extend(item for item in grouped if isinstance(item, BaseException))
        if current.__cause__ is not None:
            pending.append(current.__cause__)
        elif current.__context__ is not None and not current.__suppress_context__:
            pending.append(current.__context__)


def _code_for_os_error(exc: OSError) -> Optional[str]:
    if isinstance(exc, socket.gaierror):
        return "ENOTFOUND"
    if isinstance(exc, ssl.SSLError):
        return "EPROTO"
    if exc.errno is not None and exc.errno in errno.errorcode:
        return errno.errorcode[exc.errno]
    if isinstance(exc, ConnectionRefusedError):
        return "ECONNREFUSED"
    if isinstance(exc, ConnectionResetError):
        return "ECONNRESET"
    return None


def _low_level_code(exc: BaseException) -> Optional[str]:
    """Return the most specific code found along the exception chain."""

    fallback: Optional[str] = None
    for candidate in _iter_causes(exc):
        if isinstance(candidate, OSError):
            code = _code_for_os_error(candidate)
            if code == "ENOTFOUND" or code == "EPROTO":
                return code
            if code and fallback is None:
                fallback = code
        message = str(candidate).lower()
        if any(fragment in message for fragment in _RESOLUTION_MESSAGES):
            return "ENOTFOUND"
        if "certificate verify failed" in message:
            fallback = fallback or "EPROTO"
    return fallback


def classify_exception(exc: BaseException, url: str) -> ClientError:
    """Map ``exc`` onto a :class:`ClientError` carrying ``url``.

    Args:
        exc: Exception raised while dispatching or reading a response.
        url: The request URL that was attempted.

    Returns:
        ``exc`` itself when it already is a :class:`ClientError`, otherwise a new
        error whose ``cause`` is ``exc``. The caller is expected to raise the
        result ``from exc``.

    Examples:
        >>> import socket
        >>> err = classify_exception(socket.gaierror(-2, "Name or service not known"), "http://x/")
        >>> (err.code, err.url)
        ('ENOTFOUND', 'http://x/')
    """

    if isinstance(exc, ClientError):
        return exc
    if isinstance(exc, httpx.TimeoutException) or isinstance(exc, TimeoutError):
        return RequestTimeout(f"Request timed out: {exc}", url=url, cause=exc)
    if isinstance(exc, httpx.UnsupportedProtocol) or isinstance(exc, httpx.InvalidURL):
        return InvalidURL(f"Invalid URL: {exc}", url=url, cause=exc)
    if isinstance(exc, zlib.error) or isinstance(exc, httpx.DecodingError):
        return DecodeError(f"Failed to decode response body: {exc}", url=url, cause=exc)

    code = _low_level_code(exc)
    if code is None:
        if isinstance(exc, httpx.ConnectError):
            code = "ECONNREFUSED"
        elif isinstance(exc, (httpx.ReadError, httpx.WriteError)):
            code = "ECONNRESET"
        elif isinstance(exc, httpx.RemoteProtocolError):
            code = "EPROTO"
    if code == "ETIMEDOUT":
        return RequestTimeout(f"Request timed out: {exc}", url=url, cause=exc)

    detail = str(exc) or exc.__class__.__name__
    if code == "ENOTFOUND":
        message = f"Unable to resolve host for {url}: {detail}"
    else:
        message = f"Request to {url} failed: {detail}"
    return ClientError(message, url=url, code=code, cause=exc)
