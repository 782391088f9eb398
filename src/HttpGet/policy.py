# === NAVMAP v1 ===
# {
#   "module": "HttpGet.policy",
#   "purpose": "HTTP policy constants and defaults.",
#   "sections": []
# }
# === /NAVMAP ===

"""HTTP policy constants and defaults.

Timeout budgets, redirect limits and header defaults used by the request engine
when neither the request options nor :mod:`HttpGet.settings` override them.
"""

# ============================================================================
# Timeout Budgets (seconds)
# ============================================================================

#: Overall budget for one logical request (all redirect hops included)
HTTP_TIMEOUT = 30.0

#: Connection establishment timeout (TCP handshake plus TLS handshake)
HTTP_CONNECT_TIMEOUT = 10.0


# ============================================================================
# Redirects
# ============================================================================

#: Redirect handling is done by the engine; httpx must never follow on its own
FOLLOW_REDIRECTS = False

#: Maximum number of redirect hops per logical request
MAX_REDIRECT_HOPS = 10

#: Status codes that trigger redirect following when a Location header is present
REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 307, 308})

#: Status codes whose follow-up request is downgraded to GET for non-GET/HEAD methods
METHOD_REWRITE_STATUS_CODES = frozenset({301, 302})


# ============================================================================
# Content Negotiation
# ============================================================================

#: Accept-Encoding sent unless the caller disabled compression or set their own
ACCEPT_ENCODING = "gzip, deflate"

#: Accept-Encoding sent when compression is disabled
IDENTITY_ENCODING = "identity"

#: Content-Encoding tokens understood by the decoder
GZIP_ENCODINGS = frozenset({"gzip", "x-gzip"})
DEFLATE_ENCODINGS = frozenset({"deflate"})


# ============================================================================
# Transfer
# ============================================================================

#: Request body slice size used for upload progress reporting
UPLOAD_CHUNK_SIZE = 64 * 1024

#: Schemes the engine is able to dispatch
SUPPORTED_SCHEMES = frozenset({"http", "https"})

#: Default ports per scheme (used to compare redirect origins)
DEFAULT_PORTS = {"http": 80, "https": 443}


# ============================================================================
# User-Agent
# ============================================================================

#: User-Agent template; filled with the package version
USER_AGENT_TEMPLATE = "http-get/{version}"


__all__ = [
    "HTTP_TIMEOUT",
    "HTTP_CONNECT_TIMEOUT",
    "FOLLOW_REDIRECTS",
    "MAX_REDIRECT_HOPS",
    "REDIRECT_STATUS_CODES",
    "METHOD_REWRITE_STATUS_CODES",
    "ACCEPT_ENCODING",
    "IDENTITY_ENCODING",
    "GZIP_ENCODINGS",
    "DEFLATE_ENCODINGS",
    "UPLOAD_CHUNK_SIZE",
    "SUPPORTED_SCHEMES",
    "DEFAULT_PORTS",
    "USER_AGENT_TEMPLATE",
]
