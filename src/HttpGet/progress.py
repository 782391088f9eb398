# === NAVMAP v1 ===
# {
#   "module": "HttpGet.progress",
#   "purpose": "Download and upload progress accounting.",
#   "sections": [
#     {
#       "id": "progressreporter",
#       "name": "ProgressReporter",
#       "anchor": "class-progressreporter",
#       "kind": "class"
#     },
#     {
#       "id": "declared-total",
#       "name": "declared_total",
#       "anchor": "function-declared-total",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Progress accounting for request and response bodies.

The reporter keeps its own running totals and calls the user callback with
``(current, total)``. ``total`` starts from the declared length when one is
trustworthy and otherwise tracks ``current``; it never shrinks, so callers can
compute percentages without guarding against a moving denominator.
"""

from __future__ import annotations

from typing import Callable, Optional

import httpx

ProgressCallback = Callable[[int, int], object]

__all__ = ["ProgressCallback", "ProgressReporter", "declared_total"]


def declared_total(headers: httpx.Headers, *, decoded: bool) -> Optional[int]:
    """Return the body size announced by ``headers``, if usable for progress.

    ``Content-Length`` describes wire bytes. When the body is being decoded the
    decoded size is unknown up front, so ``None`` is returned.
    """

    if decoded:
        return None
    raw = headers.get("content-length")
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value >= 0 else None


class ProgressReporter:
    """Running byte counter bound to one exchange.

    Attributes:
        current: Bytes accounted so far.
        total: Expected total, never smaller than ``current``.

    Examples:
        >>> seen = []
        >>> reporter = ProgressReporter(lambda cur, tot: seen.append((cur, tot)), total=10)
        >>> reporter.advance(4)
        >>> seen
        [(4, 10)]
    """

    def __init__(self, callback: Optional[ProgressCallback], total: Optional[int] = None) -> None:
        self._callback = callback
        self.current = 0
        self.total = total or 0

    def advance(self, size: int) -> None:
        """Account ``size`` more bytes and notify the callback."""

        if size <= 0:
            return
        self.current += size
        self.total = max(self.total, self.current)
        if self._callback is not None:
            self._callback(self.current, self.total)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(current={self.current}, total={self.total})"
