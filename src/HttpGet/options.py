# === NAVMAP v1 ===
# {
#   "module": "HttpGet.options",
#   "purpose": "Typed, eagerly validated request options.",
#   "sections": [
#     {
#       "id": "requestoptions",
#       "name": "RequestOptions",
#       "anchor": "class-requestoptions",
#       "kind": "class"
#     },
#     {
#       "id": "build-options",
#       "name": "build_options",
#       "anchor": "function-build-options",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Request options.

A request is described by :class:`RequestOptions`, a frozen pydantic model.
Every field is independently defaulted and validated when the model is built,
so malformed options (a non-integer ``max_body``, a ``progress`` value that is
not callable, an unknown keyword) are rejected synchronously by
:func:`build_options` with a :class:`~HttpGet.errors.ConfigurationError`,
before the engine opens a single socket.
"""

from __future__ import annotations

import math
import re
import ssl
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError

__all__ = [
    "RequestOptions",
    "build_options",
    "MAX_BODY_MESSAGE",
    "PROGRESS_MESSAGE",
    "UPLOAD_PROGRESS_MESSAGE",
]

MAX_BODY_MESSAGE = "Invalid max_body specification. Expecting a proper integer value."
PROGRESS_MESSAGE = "Expecting a function as progress callback."
UPLOAD_PROGRESS_MESSAGE = "Expecting a function as upload_progress callback."
CA_MESSAGE = "Expecting PEM encoded certificate(s) as ca."

_TOKEN = re.compile(r"^[!#$%&'*+.^_`|~0-9A-Za-z-]+$")
_PEM_MARKER = "-----BEGIN CERTIFICATE-----"

RequestTarget = Union[str, Mapping[str, Any], "RequestOptions"]


class RequestOptions(BaseModel):
    """Description of one logical request.

    Attributes:
        url: Target URL; a missing scheme defaults to ``http://``.
        method: HTTP method, upper-cased.
        headers: Request headers keyed by lower-cased name (last write wins).
        body: Optional request body; ``str`` is encoded as UTF-8.
        no_compress: Do not negotiate or decode compressed responses.
        max_body: Maximum decoded body size in bytes.
        progress: ``callback(current, total)`` for downloaded body bytes.
        upload_progress: ``callback(sent, total)`` for request body bytes.
        ca: Trust anchors (PEM) replacing the default store for HTTPS.
        timeout: Budget in seconds for the whole call, redirects included.
        max_redirects: Redirect hop limit.
        user_agent: ``User-Agent`` sent unless ``headers`` already has one.

    Examples:
        >>> options = build_options("example.com", maxBody=1024)
        >>> options.max_body
        1024
    """

    url: str
    method: str = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[bytes] = None
    no_compress: bool = Field(
        default=False,
        validation_alias=AliasChoices("no_compress", "noCompress"),
    )
    max_body: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("max_body", "maxBody"),
    )
    progress: Optional[Callable[[int, int], Any]] = None
    upload_progress: Optional[Callable[[int, int], Any]] = Field(
        default=None,
        validation_alias=AliasChoices("upload_progress", "uploadProgress"),
    )
    ca: Optional[Tuple[str, ...]] = None
    timeout: Optional[float] = Field(default=None, gt=0.0)
    max_redirects: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("max_redirects", "maxRedirects"),
    )
    user_agent: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("user_agent", "userAgent"),
    )

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    @field_validator("url", mode="before")
    @classmethod
    def validate_url(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Expecting a non-empty string as url.")
        return value

    @field_validator("method", mode="before")
    @classmethod
    def validate_method(cls, value: Any) -> str:
        if not isinstance(value, str) or not _TOKEN.match(value):
            raise ValueError(f"Invalid HTTP method: {value!r}")
        return value.upper()

    @field_validator("headers", mode="before")
    @classmethod
    def normalise_headers(cls, value: Any) -> Dict[str, str]:
        """Lower-case header names so later duplicates replace earlier ones."""

        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ValueError("Expecting a mapping of header names to values as headers.")
        normalised: Dict[str, str] = {}
        for name, header_value in value.items():
            if not isinstance(name, str) or not _TOKEN.match(name.strip()):
                raise ValueError(f"Invalid header name: {name!r}")
            if header_value is None:
                continue
            text = str(header_value)
            if not text.isascii() or any(char in text for char in "\r\n\x00"):
                raise ValueError(
                    f"Invalid value for header {name.strip()!r}: expecting ASCII text without line breaks."
                )
            normalised[name.strip().lower()] = text
        return normalised

    @field_validator("body", mode="before")
    @classmethod
    def encode_body(cls, value: Any) -> Optional[bytes]:
        if value is None or isinstance(value, bytes):
            return value
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode("utf-8")
        raise ValueError("Expecting bytes or str as body.")

    @field_validator("max_body", mode="before")
    @classmethod
    def validate_max_body(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError(MAX_BODY_MESSAGE)
        if isinstance(value, float) and math.isfinite(value) and value.is_integer():
            value = int(value)
        if not isinstance(value, int) or value < 0:
            raise ValueError(MAX_BODY_MESSAGE)
        return value

    @field_validator("progress", mode="before")
    @classmethod
    def validate_progress(cls, value: Any) -> Any:
        if value is not None and not callable(value):
            raise ValueError(PROGRESS_MESSAGE)
        return value

    @field_validator("upload_progress", mode="before")
    @classmethod
    def validate_upload_progress(cls, value: Any) -> Any:
        if value is not None and not callable(value):
            raise ValueError(UPLOAD_PROGRESS_MESSAGE)
        return value

    @field_validator("ca", mode="before")
    @classmethod
    def validate_ca(cls, value: Any) -> Optional[Tuple[str, ...]]:
        if value is None:
            return None
        items = [value] if isinstance(value, (str, bytes)) else list(value)
        anchors = []
        for item in items:
            if isinstance(item, bytes):
                try:
                    item = item.decode("ascii")
                except UnicodeDecodeError as exc:
                    raise ValueError(CA_MESSAGE) from exc
            if not isinstance(item, str) or _PEM_MARKER not in item:
                raise ValueError(CA_MESSAGE)
            anchors.append(item)
        if not anchors:
            raise ValueError(CA_MESSAGE)
        try:
            ssl.create_default_context(cadata="\n".join(anchors))
        except ssl.SSLError as exc:
            raise ValueError(CA_MESSAGE) from exc
        return tuple(anchors)

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


def _describe(error: Mapping[str, Any]) -> str:
    """Render a pydantic error entry as a caller-facing message."""

    location = ".".join(str(part) for part in error.get("loc", ())) or "options"
    if error.get("type") == "extra_forbidden":
        return f"Unknown option {location!r}."
    original = (error.get("ctx") or {}).get("error")
    if isinstance(original, ValueError):
        return str(original)
    return f"Invalid {location} option: {error.get('msg')}"


def build_options(target: RequestTarget, **overrides: Any) -> RequestOptions:
    """Validate ``target`` plus keyword ``overrides`` into :class:`RequestOptions`.

    Args:
        target: URL string, mapping of options, or an existing ``RequestOptions``.
        **overrides: Individual options; they replace values from ``target``.

    Returns:
        A frozen, fully validated ``RequestOptions``.

    Raises:
        ConfigurationError: If any option is invalid. The message names the
            offending option.
    """

    if isinstance(target, RequestOptions):
        if not overrides:
            return target
        values: Dict[str, Any] = target.model_dump()
    elif isinstance(target, str):
        values = {"url": target}
    elif isinstance(target, Mapping):
        values = dict(target)
    else:
        raise ConfigurationError(
            "Expecting a URL string, a mapping of options or RequestOptions as request target."
        )
    values.update(overrides)

    try:
        return RequestOptions(**values)
    except PydanticValidationError as exc:
        errors = exc.errors()
        message = _describe(errors[0]) if errors else str(exc)
        raise ConfigurationError(message) from exc
