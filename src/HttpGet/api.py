# === NAVMAP v1 ===
# {
#   "module": "HttpGet.api",
#   "purpose": "Public request entry points: awaitable, blocking and callback styles.",
#   "sections": [
#     {
#       "id": "request",
#       "name": "request",
#       "anchor": "function-request",
#       "kind": "function"
#     },
#     {
#       "id": "get",
#       "name": "get",
#       "anchor": "function-get",
#       "kind": "function"
#     },
#     {
#       "id": "head",
#       "name": "head",
#       "anchor": "function-head",
#       "kind": "function"
#     },
#     {
#       "id": "post",
#       "name": "post",
#       "anchor": "function-post",
#       "kind": "function"
#     },
#     {
#       "id": "request-sync",
#       "name": "request_sync",
#       "anchor": "function-request-sync",
#       "kind": "function"
#     },
#     {
#       "id": "submit",
#       "name": "submit",
#       "anchor": "function-submit",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Public entry points.

All entry points validate their options *before* anything is scheduled: an
invalid ``max_body``, a non-callable ``progress`` or an unknown option raises
:class:`~HttpGet.errors.ConfigurationError` from the call itself, never from
the awaitable or callback. Everything that goes wrong afterwards is delivered
as a :class:`~HttpGet.errors.ClientError`.

Examples:
    >>> import asyncio
    >>> from HttpGet import get
    >>> response = asyncio.run(get("example.com"))  # doctest: +SKIP
    >>> response.code  # doctest: +SKIP
    200
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx

from .assembler import Response
from .engine import execute
from .errors import ClientError, ConfigurationError
from .options import RequestTarget, build_options
from .settings import EngineSettings

__all__ = [
    "request",
    "get",
    "head",
    "post",
    "request_sync",
    "get_sync",
    "head_sync",
    "submit",
    "CompletionCallback",
]

CompletionCallback = Callable[[Optional[BaseException], Optional[Response]], Any]


def request(
    target: RequestTarget,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    settings: Optional[EngineSettings] = None,
    **options: Any,
) -> Awaitable[Response]:
    """Validate a request and return the awaitable that performs it.

    Args:
        target: URL string, mapping of options, or :class:`RequestOptions`.
        transport: Optional HTTPX transport replacing the network.
        settings: Engine defaults; the process settings when omitted.
        **options: Request options, see :class:`RequestOptions`. camelCase
            aliases (``noCompress``, ``maxBody``) are accepted.

    Returns:
        A coroutine resolving to the final :class:`Response`.

    Raises:
        ConfigurationError: Synchronously, for invalid options.
    """

    validated = build_options(target, **options)
    return execute(validated, settings=settings, transport=transport)


def get(target: RequestTarget, **options: Any) -> Awaitable[Response]:
    """Issue a GET request; see :func:`request`."""

    return request(target, **_with_method(options, "GET"))


def head(target: RequestTarget, **options: Any) -> Awaitable[Response]:
    """Issue a HEAD request; see :func:`request`."""

    return request(target, **_with_method(options, "HEAD"))


def post(target: RequestTarget, body: Any = None, **options: Any) -> Awaitable[Response]:
    """Issue a POST request carrying ``body``; see :func:`request`."""

    options = _with_method(options, "POST")
    if body is not None:
        options["body"] = body
    return request(target, **options)


def request_sync(target: RequestTarget, **options: Any) -> Response:
    """Blocking variant of :func:`request` for code without an event loop."""

    return asyncio.run(_await(request(target, **options)))


def get_sync(target: RequestTarget, **options: Any) -> Response:
    """Blocking variant of :func:`get`."""

    return asyncio.run(_await(get(target, **options)))


def head_sync(target: RequestTarget, **options: Any) -> Response:
    """Blocking variant of :func:`head`."""

    return asyncio.run(_await(head(target, **options)))


def submit(
    target: RequestTarget,
    callback: CompletionCallback,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    settings: Optional[EngineSettings] = None,
    **options: Any,
) -> "asyncio.Task[Response]":
    """Schedule a request on the running loop and report through ``callback``.

    ``callback(error, response)`` is invoked exactly once: with ``(None,
    response)`` on success, or ``(error, None)`` on failure. Cancelling the
    returned task reports a :class:`ClientError` with code ``ECANCELED``.

    Raises:
        ConfigurationError: Synchronously, for invalid options or a
            non-callable ``callback``.
        RuntimeError: If no event loop is running.
    """

    if not callable(callback):
        raise ConfigurationError("Expecting a function as completion callback.")
    validated = build_options(target, **options)
    task = asyncio.get_running_loop().create_task(
        execute(validated, settings=settings, transport=transport)
    )

    def _deliver(done: "asyncio.Task[Response]") -> None:
        if done.cancelled():
            callback(ClientError("Request cancelled", url=validated.url, code="ECANCELED"), None)
            return
        error = done.exception()
        if error is not None:
            callback(error, None)
        else:
            callback(None, done.result())

    task.add_done_callback(_deliver)
    return task


def _with_method(options: dict, method: str) -> dict:
    if "method" in options:
        raise ConfigurationError(f"Unknown option 'method' for a {method} request.")
    return {**options, "method": method}


async def _await(awaitable: Awaitable[Response]) -> Response:
    return await awaitable
