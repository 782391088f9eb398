# === NAVMAP v1 ===
# {
#   "module": "HttpGet.assembler",
#   "purpose": "Body accumulation, size limits and the final Response value.",
#   "sections": [
#     {
#       "id": "response",
#       "name": "Response",
#       "anchor": "class-response",
#       "kind": "class"
#     },
#     {
#       "id": "responseassembler",
#       "name": "ResponseAssembler",
#       "anchor": "class-responseassembler",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Response assembly.

The assembler owns the body buffer of a single exchange. Decoded chunks are
appended as they arrive, ``max_body`` is enforced on every append (and, when
possible, up front from ``Content-Length``), and :meth:`ResponseAssembler.build`
freezes the result into an immutable :class:`Response`.

Partial content needs no special casing: a ``206`` body already is the
requested range, and its ``Content-Range``/``Content-Length`` headers are
passed through untouched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

import httpx

from .errors import MaxBodyExceeded
from .progress import declared_total

logger = logging.getLogger(__name__)

__all__ = ["Response", "ResponseAssembler"]


@dataclass(frozen=True, slots=True)
class Response:
    """Fully materialised HTTP response.

    Attributes:
        code: HTTP status code of the final exchange.
        headers: Case-insensitive response headers, unmodified.
        url: The URL that produced this response (after redirects).
        buffer: Decoded response body.
        redirects: ``(url, status)`` for every redirect hop that was followed.

    Examples:
        >>> resp = Response(200, httpx.Headers({"Content-Type": "text/plain"}), "http://x/", b"hi")
        >>> resp.headers["content-type"], resp.text
        ('text/plain', 'hi')
    """

    code: int
    headers: httpx.Headers
    url: str
    buffer: bytes
    redirects: Tuple[Tuple[str, int], ...] = field(default=())

    @property
    def ok(self) -> bool:
        return 200 <= self.code < 300

    @property
    def encoding(self) -> str:
        """Charset announced by ``Content-Type``, defaulting to UTF-8."""

        content_type = self.headers.get("content-type", "")
        for parameter in content_type.split(";")[1:]:
            name, _, value = parameter.partition("=")
            if name.strip().lower() == "charset" and value.strip():
                return value.strip().strip("\"'")
        return "utf-8"

    @property
    def text(self) -> str:
        if not self.buffer:
            return ""
        try:
            return self.buffer.decode(self.encoding)
        except (LookupError, UnicodeDecodeError):
            return self.buffer.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.text)


class ResponseAssembler:
    """Accumulate decoded body chunks for one exchange.

    Args:
        url: Request URL, reported on :class:`MaxBodyExceeded`.
        max_body: Optional upper bound on the decoded body size in bytes.
    """

    def __init__(self, url: str, max_body: Optional[int] = None) -> None:
        self._url = url
        self._max_body = max_body
        self._buffer = bytearray()

    def check_declared(self, headers: httpx.Headers, *, decoded: bool) -> None:
        """Fail early when ``Content-Length`` already exceeds ``max_body``.

        Only applies when the body is not being decoded; for compressed bodies
        the wire length says nothing about the decoded size.
        """

        if self._max_body is None:
            return
        total = declared_total(headers, decoded=decoded)
        if total is not None and total > self._max_body:
            logger.debug(
                "declared body exceeds limit",
                extra={"url": self._url, "content_length": total, "max_body": self._max_body},
            )
            raise MaxBodyExceeded(self._max_body, url=self._url, received=total)

    def append(self, chunk: bytes) -> None:
        if not chunk:
            return
        if self._max_body is not None and len(self._buffer) + len(chunk) > self._max_body:
            raise MaxBodyExceeded(
                self._max_body,
                url=self._url,
                received=len(self._buffer) + len(chunk),
            )
        self._buffer += chunk

    def build(
        self,
        *,
        code: int,
        headers: httpx.Headers,
        url: str,
        redirects: Tuple[Tuple[str, int], ...] = (),
    ) -> Response:
        return Response(
            code=code,
            headers=httpx.Headers(headers),
            url=url,
            buffer=bytes(self._buffer),
            redirects=tuple(redirects),
        )
