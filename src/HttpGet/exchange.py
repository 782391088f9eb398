# === NAVMAP v1 ===
# {
#   "module": "HttpGet.exchange",
#   "purpose": "Per-hop request state.",
#   "sections": [
#     {
#       "id": "inflightexchange",
#       "name": "InFlightExchange",
#       "anchor": "class-inflightexchange",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Per-hop request state.

An :class:`InFlightExchange` describes what is sent on one hop of a logical
request. It is never mutated: following a redirect produces a new instance.
The response-side state of a hop (decoder, assembler, progress counters) is
created by the engine once the response headers are known and is dropped with
the hop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from .urls import NormalizedURL

__all__ = ["InFlightExchange"]


@dataclass(frozen=True, slots=True)
class InFlightExchange:
    """Request side of a single hop.

    Attributes:
        target: Normalised URL being fetched on this hop.
        method: HTTP method for this hop.
        headers: Request headers keyed by lower-cased name.
        body: Request body, if any.
        hop: Number of redirects followed before this hop.
        attempted_url: URL reported on errors raised during this hop. For the
            first hop this is the caller's string exactly as given.
        derived_authorization: ``True`` when ``Authorization`` came from
            credentials embedded in the URL.
    """

    target: NormalizedURL
    method: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    hop: int = 0
    attempted_url: str = ""
    derived_authorization: bool = False

    @property
    def url(self) -> str:
        return self.target.url

    @property
    def error_url(self) -> str:
        return self.attempted_url or self.target.url
