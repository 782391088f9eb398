# === NAVMAP v1 ===
# {
#   "module": "HttpGet.redirect",
#   "purpose": "Redirect detection, Location resolution and hop construction.",
#   "sections": [
#     {
#       "id": "is-redirect",
#       "name": "is_redirect",
#       "anchor": "function-is-redirect",
#       "kind": "function"
#     },
#     {
#       "id": "resolve-location",
#       "name": "resolve_location",
#       "anchor": "function-resolve-location",
#       "kind": "function"
#     },
#     {
#       "id": "redirect-method",
#       "name": "redirect_method",
#       "anchor": "function-redirect-method",
#       "kind": "function"
#     },
#     {
#       "id": "next-exchange",
#       "name": "next_exchange",
#       "anchor": "function-next-exchange",
#       "kind": "function"
#     },
#     {
#       "id": "format-audit-trail",
#       "name": "format_audit_trail",
#       "anchor": "function-format-audit-trail",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Redirect handling: manual redirect following with an audited hop list.

HTTPX auto-redirects are disabled for the per-call client. When a response is a
redirect, :func:`next_exchange` builds the next :class:`InFlightExchange`:

- **Resolution**: ``Location`` is joined against the current hop URL, so both
  absolute and relative targets work.
- **Validation**: the target goes through the same normaliser as the caller's
  URL; non-HTTP schemes and broken hostnames raise ``InvalidURL``.
- **Method**: 303 continues as GET, as do 301/302 answering anything other than
  GET/HEAD. 307/308 keep method and body.
- **Credentials**: ``Authorization`` and a caller-supplied ``Host`` are only
  forwarded while the chain stays on the original origin.
- **Max hops**: exceeding the limit raises ``TooManyRedirects``.

Example:
    >>> resolve_location("http://example.com/a/b", "../c")
    'http://example.com/c'
"""

import logging
from typing import List, Mapping, Tuple
from urllib.parse import urljoin

from .errors import InvalidURL, TooManyRedirects
from .exchange import InFlightExchange
from .policy import METHOD_REWRITE_STATUS_CODES, REDIRECT_STATUS_CODES
from .urls import normalize_url

logger = logging.getLogger(__name__)

_BODY_HEADERS = ("content-length", "content-type", "content-encoding", "transfer-encoding")


def is_redirect(status_code: int, headers: Mapping[str, str]) -> bool:
    """Return ``True`` when the response should be followed."""

    return status_code in REDIRECT_STATUS_CODES and bool(headers.get("location"))


def resolve_location(current_url: str, location: str) -> str:
    """Resolve ``location`` against ``current_url`` as per RFC 9110."""

    return urljoin(current_url, location.strip())


def redirect_method(status_code: int, method: str) -> str:
    """Return the method to use for the request following ``status_code``."""

    if status_code == 303 and method != "HEAD":
        return "GET"
    if status_code in METHOD_REWRITE_STATUS_CODES and method not in {"GET", "HEAD"}:
        return "GET"
    return method


def next_exchange(
    exchange: InFlightExchange,
    *,
    status_code: int,
    location: str,
    origin: Tuple[str, str, int],
    max_redirects: int,
    hops: List[Tuple[str, int]],
) -> InFlightExchange:
    """Build the exchange that follows a redirect response.

    Args:
        exchange: The hop that produced the redirect.
        status_code: Redirect status code.
        location: Raw ``Location`` header value.
        origin: ``(scheme, host, port)`` of the caller's original URL.
        max_redirects: Maximum number of hops.
        hops: Audit trail; ``(url, status)`` of this hop is appended.

    Returns:
        A new :class:`InFlightExchange` for the redirect target.

    Raises:
        TooManyRedirects: If following would exceed ``max_redirects``.
        InvalidURL: If the target cannot be dispatched.
    """

    hops.append((exchange.url, status_code))
    if len(hops) > max_redirects:
        logger.warning(
            "redirect limit exceeded",
            extra={"max_redirects": max_redirects, "hops": len(hops)},
        )
        raise TooManyRedirects(max_redirects, hops, url=exchange.error_url)

    resolved = resolve_location(exchange.url, location)
    try:
        target = normalize_url(resolved)
    except InvalidURL as exc:
        logger.warning(
            "unsafe redirect target",
            extra={"source": exchange.url, "target": resolved, "reason": str(exc)},
        )
        raise

    method = redirect_method(status_code, exchange.method)
    headers = dict(exchange.headers)
    body = exchange.body
    if method != exchange.method:
        body = None
        for name in _BODY_HEADERS:
            headers.pop(name, None)

    derived = exchange.derived_authorization
    if target.origin != origin:
        headers.pop("authorization", None)
        headers.pop("host", None)
        derived = False
    if target.authorization is not None and (derived or "authorization" not in headers):
        headers["authorization"] = target.authorization
        derived = True

    logger.debug(
        "Following redirect",
        extra={
            "from": exchange.url,
            "to": target.url,
            "status": status_code,
            "hop": exchange.hop + 1,
        },
    )
    return InFlightExchange(
        target=target,
        method=method,
        headers=headers,
        body=body,
        hop=exchange.hop + 1,
        attempted_url=target.url,
        derived_authorization=derived,
    )


def format_audit_trail(audit_trail: List[Tuple[str, int]]) -> str:
    """Format audit trail for logging/display.

    Args:
        audit_trail: List of (url, status) tuples

    Returns:
        Formatted string like "http://a (301) → http://b (302)"
    """
    parts = [f"{url} ({status})" for url, status in audit_trail]
    return " → ".join(parts)


__all__ = [
    "is_redirect",
    "resolve_location",
    "redirect_method",
    "next_exchange",
    "format_audit_trail",
]
