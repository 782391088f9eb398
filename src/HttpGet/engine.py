# === NAVMAP v1 ===
# {
#   "module": "HttpGet.engine",
#   "purpose": "Drive one logical request from options to a materialised Response.",
#   "sections": [
#     {
#       "id": "execute",
#       "name": "execute",
#       "anchor": "function-execute",
#       "kind": "function"
#     },
#     {
#       "id": "logicalrequest",
#       "name": "_LogicalRequest",
#       "anchor": "class-logicalrequest",
#       "kind": "class"
#     },
#     {
#       "id": "initial-exchange",
#       "name": "initial_exchange",
#       "anchor": "function-initial-exchange",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Request engine.

:func:`execute` runs one logical request to completion:

1. normalise the URL and build the first :class:`InFlightExchange`;
2. dispatch it over the per-call HTTPX client;
3. on a redirect, build the next exchange and loop;
4. otherwise stream the raw body through decode → assemble → report;
5. return the :class:`Response`, or raise a :class:`ClientError`.

Every transport, TLS, resolution and decoding failure is classified before it
leaves this module, and the whole call (redirects included) runs under one
timeout budget. The coroutine either returns or raises, exactly once.
"""

from __future__ import annotations

import asyncio
import logging
import time
import zlib
from typing import List, Optional, Tuple, Union

import httpx

from .assembler import Response, ResponseAssembler
from .decoding import create_decoder
from .errors import ClientError, InvalidURL, RequestTimeout, classify_exception
from .exchange import InFlightExchange
from .logging_utils import redact_url
from .options import RequestOptions
from .policy import IDENTITY_ENCODING
from .progress import ProgressReporter, declared_total
from .redirect import format_audit_trail, is_redirect, next_exchange
from .settings import EngineSettings, get_settings
from .transport import create_http_client, dispatch
from .urls import normalize_url

logger = logging.getLogger(__name__)

__all__ = ["execute", "initial_exchange"]

_TRANSPORT_ERRORS = (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, OSError, zlib.error)


def initial_exchange(options: RequestOptions, settings: EngineSettings) -> InFlightExchange:
    """Build the first hop: normalised URL plus negotiated request headers.

    Raises:
        InvalidURL: If ``options.url`` cannot be dispatched.
    """

    target = normalize_url(options.url)
    headers = dict(options.headers)
    if options.no_compress:
        headers.setdefault("accept-encoding", IDENTITY_ENCODING)
    else:
        headers.setdefault("accept-encoding", settings.accept_encoding)
    headers.setdefault("user-agent", options.user_agent or settings.user_agent)

    derived = False
    if target.authorization is not None and "authorization" not in headers:
        headers["authorization"] = target.authorization
        derived = True

    return InFlightExchange(
        target=target,
        method=options.method,
        headers=headers,
        body=options.body,
        hop=0,
        attempted_url=options.url,
        derived_authorization=derived,
    )


class _LogicalRequest:
    """State shared by the hops of one call; never shared between calls."""

    def __init__(
        self,
        options: RequestOptions,
        settings: EngineSettings,
        transport: Optional[httpx.AsyncBaseTransport],
    ) -> None:
        self.options = options
        self.settings = settings
        self.transport = transport
        self.timeout = options.timeout or settings.timeout_sec
        self.max_redirects = (
            options.max_redirects
            if options.max_redirects is not None
            else settings.max_redirects
        )
        self.current_url = options.url
        self.hops: List[Tuple[str, int]] = []

    async def run(self) -> Response:
        try:
            exchange = initial_exchange(self.options, self.settings)
        except ValueError as exc:
            raise InvalidURL(
                f"Invalid URL {self.options.url}: {exc}", url=self.options.url, cause=exc
            ) from exc
        origin = exchange.target.origin
        try:
            client = create_http_client(
                timeout=self.timeout,
                connect_timeout=self.settings.connect_timeout_sec,
                ca=self.options.ca,
                transport=self.transport,
            )
        except OSError as exc:
            raise classify_exception(exc, exchange.error_url) from exc
        async with client:
            while True:
                self.current_url = exchange.error_url
                outcome = await self._perform(client, exchange, origin)
                if isinstance(outcome, Response):
                    return outcome
                exchange = outcome

    async def _perform(
        self,
        client: httpx.AsyncClient,
        exchange: InFlightExchange,
        origin: Tuple[str, str, int],
    ) -> Union[Response, InFlightExchange]:
        logger.debug(
            "dispatching request",
            extra={
                "method": exchange.method,
                "url": redact_url(exchange.url),
                "hop": exchange.hop,
            },
        )
        try:
            async with dispatch(
                client,
                method=exchange.method,
                url=exchange.url,
                headers=exchange.headers,
                body=exchange.body,
                upload_progress=self.options.upload_progress,
            ) as response:
                if is_redirect(response.status_code, response.headers):
                    return next_exchange(
                        exchange,
                        status_code=response.status_code,
                        location=response.headers["location"],
                        origin=origin,
                        max_redirects=self.max_redirects,
                        hops=self.hops,
                    )
                return await self._materialise(exchange, response)
        except ClientError:
            raise
        except _TRANSPORT_ERRORS as exc:
            raise classify_exception(exc, exchange.error_url) from exc

    async def _materialise(self, exchange: InFlightExchange, response: httpx.Response) -> Response:
        """Stream the body through decode → assemble → report."""

        decoder = create_decoder(
            response.headers.get("content-encoding"),
            enabled=not self.options.no_compress,
        )
        # Content-Length describes the body only when it is passed through as is.
        unsized = decoder.transforms or exchange.method == "HEAD"
        assembler = ResponseAssembler(exchange.error_url, self.options.max_body)
        assembler.check_declared(response.headers, decoded=unsized)
        reporter = ProgressReporter(
            self.options.progress,
            declared_total(response.headers, decoded=unsized),
        )

        async for raw in response.aiter_raw():
            chunk = decoder.decode(raw)
            assembler.append(chunk)
            reporter.advance(len(chunk))
        tail = decoder.flush()
        assembler.append(tail)
        reporter.advance(len(tail))

        return assembler.build(
            code=response.status_code,
            headers=response.headers,
            url=str(response.url),
            redirects=tuple(self.hops),
        )


async def execute(
    options: RequestOptions,
    *,
    settings: Optional[EngineSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Response:
    """Run ``options`` to completion.

    Args:
        options: Validated request options.
        settings: Engine defaults; the process settings when omitted.
        transport: Optional HTTPX transport replacing the network.

    Returns:
        The final :class:`Response` (after redirects). 4xx/5xx statuses are
        returned, not raised.

    Raises:
        ClientError: For any failure once the request is under way.
    """

    call = _LogicalRequest(options, settings or get_settings(), transport)
    started = time.perf_counter()
    try:
        response = await asyncio.wait_for(call.run(), timeout=call.timeout)
    except asyncio.TimeoutError as exc:
        error: ClientError = RequestTimeout(
            f"Request timed out after {call.timeout:g}s",
            url=call.current_url,
            cause=exc,
        )
        _log_failure(error, started)
        raise error from exc
    except ClientError as exc:
        _log_failure(exc, started)
        raise

    logger.info(
        "request complete",
        extra={
            "method": options.method,
            "url": redact_url(response.url),
            "status": response.code,
            "bytes": len(response.buffer),
            "redirects": format_audit_trail(list(response.redirects)) or None,
            "elapsed_ms": round((time.perf_counter() - started) * 1000, 3),
        },
    )
    return response


def _log_failure(error: ClientError, started: float) -> None:
    logger.warning(
        "request failed",
        extra={
            "url": redact_url(error.url),
            "code": error.code,
            "error": str(error),
            "elapsed_ms": round((time.perf_counter() - started) * 1000, 3),
        },
    )
