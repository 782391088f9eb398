# === NAVMAP v1 ===
# {
#   "module": "HttpGet.decoding",
#   "purpose": "Incremental gzip/deflate decoding of response bodies.",
#   "sections": [
#     {
#       "id": "contentdecoder",
#       "name": "ContentDecoder",
#       "anchor": "class-contentdecoder",
#       "kind": "class"
#     },
#     {
#       "id": "identitydecoder",
#       "name": "IdentityDecoder",
#       "anchor": "class-identitydecoder",
#       "kind": "class"
#     },
#     {
#       "id": "gzipdecoder",
#       "name": "GzipDecoder",
#       "anchor": "class-gzipdecoder",
#       "kind": "class"
#     },
#     {
#       "id": "deflatedecoder",
#       "name": "DeflateDecoder",
#       "anchor": "class-deflatedecoder",
#       "kind": "class"
#     },
#     {
#       "id": "create-decoder",
#       "name": "create_decoder",
#       "anchor": "function-create-decoder",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Incremental content decoding for response bodies.

Each exchange gets its own decoder instance: :func:`create_decoder` inspects the
``Content-Encoding`` header and returns a stateful object whose :meth:`decode`
is fed every raw chunk as it arrives and whose :meth:`flush` is called once the
body is complete. Decoders raise :class:`zlib.error` on corrupt input; the
engine classifies that as :class:`~HttpGet.errors.DecodeError`.
"""

from __future__ import annotations

import zlib
from typing import Optional

from .policy import DEFLATE_ENCODINGS, GZIP_ENCODINGS

__all__ = [
    "ContentDecoder",
    "IdentityDecoder",
    "GzipDecoder",
    "DeflateDecoder",
    "create_decoder",
]


class ContentDecoder:
    """Interface for per-exchange body decoders."""

    #: ``True`` when output bytes differ from wire bytes
    transforms = False

    def decode(self, data: bytes) -> bytes:
        raise NotImplementedError

    def flush(self) -> bytes:
        raise NotImplementedError


class IdentityDecoder(ContentDecoder):
    """Pass-through decoder for unencoded (or deliberately undecoded) bodies."""

    def decode(self, data: bytes) -> bytes:
        return data

    def flush(self) -> bytes:
        return b""


class GzipDecoder(ContentDecoder):
    """Inflate a gzip stream, including multi-member payloads."""

    transforms = True

    def __init__(self) -> None:
        self._decompressor = zlib.decompressobj(zlib.MAX_WBITS | 16)
        self._received = False

    def decode(self, data: bytes) -> bytes:
        if not data:
            return b""
        self._received = True
        output = bytearray()
        while data:
            if self._decompressor.eof:
                # Trailing NUL padding after a member is not another member.
                data = data.lstrip(b"\x00")
                if not data:
                    break
                # Concatenated gzip members: restart on whatever followed the trailer.
                self._decompressor = zlib.decompressobj(zlib.MAX_WBITS | 16)
            output += self._decompressor.decompress(data)
            data = self._decompressor.unused_data if self._decompressor.eof else b""
        return bytes(output)

    def flush(self) -> bytes:
        tail = self._decompressor.flush()
        if self._received and not self._decompressor.eof:
            raise zlib.error("incomplete gzip stream")
        return tail


class DeflateDecoder(ContentDecoder):
    """Inflate ``deflate`` bodies, accepting zlib-wrapped and raw streams.

    RFC 9110 defines ``deflate`` as the zlib format, but a number of servers
    send raw deflate data. The first chunk decides which variant is in use.
    """

    transforms = True

    def __init__(self) -> None:
        self._first_attempt = True
        self._decompressor = zlib.decompressobj()
        self._received = False

    def decode(self, data: bytes) -> bytes:
        if not data:
            return b""
        self._received = True
        if self._first_attempt:
            self._first_attempt = False
            try:
                return self._decompressor.decompress(data)
            except zlib.error:
                self._decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
        return self._decompressor.decompress(data)

    def flush(self) -> bytes:
        tail = self._decompressor.flush()
        if self._received and not self._decompressor.eof:
            raise zlib.error("incomplete deflate stream")
        return tail


def create_decoder(content_encoding: Optional[str], *, enabled: bool = True) -> ContentDecoder:
    """Return a fresh decoder for ``content_encoding``.

    Args:
        content_encoding: Raw ``Content-Encoding`` header value, if any.
        enabled: ``False`` when the caller asked for the wire bytes untouched.

    Returns:
        A decoder owned by exactly one exchange. Unknown encodings, stacked
        encodings (``gzip, br``) and ``identity`` pass bytes through.

    Examples:
        >>> create_decoder("gzip").__class__.__name__
        'GzipDecoder'
        >>> create_decoder("gzip", enabled=False).__class__.__name__
        'IdentityDecoder'
    """

    if not enabled or not content_encoding:
        return IdentityDecoder()
    token = content_encoding.strip().lower()
    if token in GZIP_ENCODINGS:
        return GzipDecoder()
    if token in DEFLATE_ENCODINGS:
        return DeflateDecoder()
    return IdentityDecoder()
