# === NAVMAP v1 ===
# {
#   "module": "HttpGet",
#   "purpose": "Package initialization for HttpGet",
#   "sections": []
# }
# === /NAVMAP ===

"""Public API for the HttpGet request engine.

This facade exposes the request entry points, the response and option types,
the error hierarchy carrying ``url`` and ``code``, and the configuration and
logging helpers.
"""

from __future__ import annotations

from .api import (
    CompletionCallback,
    get,
    get_sync,
    head,
    head_sync,
    post,
    request,
    request_sync,
    submit,
)
from .assembler import Response
from .errors import (
    ClientError,
    ConfigurationError,
    DecodeError,
    HttpGetError,
    InvalidURL,
    MaxBodyExceeded,
    RequestTimeout,
    TooManyRedirects,
)
from .logging_utils import setup_logging
from .options import RequestOptions, build_options
from .settings import (
    EngineSettings,
    __version__,
    get_settings,
    load_settings,
    reset_settings,
)

__all__ = [
    "__version__",
    "ClientError",
    "CompletionCallback",
    "ConfigurationError",
    "DecodeError",
    "EngineSettings",
    "HttpGetError",
    "InvalidURL",
    "MaxBodyExceeded",
    "RequestOptions",
    "RequestTimeout",
    "Response",
    "TooManyRedirects",
    "build_options",
    "get",
    "get_settings",
    "get_sync",
    "head",
    "head_sync",
    "load_settings",
    "post",
    "request",
    "request_sync",
    "reset_settings",
    "setup_logging",
    "submit",
]
