# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared fixtures: local HTTP/HTTPS servers and settings isolation",
#   "sections": [
#     {
#       "id": "serverstate",
#       "name": "_ServerState",
#       "anchor": "class-serverstate",
#       "kind": "class"
#     },
#     {
#       "id": "handler",
#       "name": "_Handler",
#       "anchor": "class-handler",
#       "kind": "class"
#     },
#     {
#       "id": "http-server",
#       "name": "http_server",
#       "anchor": "function-http-server",
#       "kind": "function"
#     },
#     {
#       "id": "https-server",
#       "name": "https_server",
#       "anchor": "function-https-server",
#       "kind": "function"
#     },
#     {
#       "id": "streamed-response",
#       "name": "streamed_response",
#       "anchor": "function-streamed-response",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Starts throwaway ``ThreadingHTTPServer`` instances (plain and TLS) that serve
the scenarios the integration tests exercise, and isolates the memoised
engine settings between tests.

Routes:
- ``/``: ``Hello World``; gzip or deflate encoded depending on
  ``Accept-Encoding``; ``Range: bytes=0-5`` answers 206
- ``/header-reflect``: echoes the ``foo`` request header
- ``/basic-auth``: returns the Basic credentials as JSON
- ``/redirect``, ``/redirect-loop``, ``/see-other``: redirect scenarios
- ``/echo``: method, body size and selected headers as JSON
- ``/large``, ``/chunked``, ``/corrupt-gzip``, ``/slow``, ``/status/<n>``
"""

from __future__ import annotations

import base64
import gzip
import json
import ssl
import threading
import time
import zlib
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Dict, List
from urllib.parse import urlparse

import httpx
import pytest

from HttpGet.settings import EngineSettings, reset_settings

TLS_DIR = Path(__file__).parent / "fixtures" / "tls"
HELLO = b"Hello World"


@dataclass
class _ServerState:
    large_payload: bytes = b"0123456789" * 1024
    requests: List[Dict[str, str]] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)


class _StatefulServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address, handler, state: _ServerState):
        super().__init__(address, handler)
        self.state = state


class _Handler(BaseHTTPRequestHandler):
    server: _StatefulServer  # type: ignore[assignment]

    def log_message(self, format: str, *args):  # noqa: D401 - silence server logs
        """Suppress default HTTP server logging."""

    def _write(self, status: int, headers: Dict[str, str], body: bytes = b"") -> None:
        self.send_response(status)
        for key, value in headers.items():
            self.send_header(key, value)
        if "Content-Length" not in headers:
            self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body and self.command != "HEAD":
            self.wfile.write(body)

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length else b""

    def _record(self) -> None:
        with self.server.state.lock:
            self.server.state.requests.append(
                {
                    "method": self.command,
                    "path": self.path,
                    "host": self.headers.get("Host", ""),
                    "authorization": self.headers.get("Authorization", ""),
                    "accept-encoding": self.headers.get("Accept-Encoding", ""),
                    "user-agent": self.headers.get("User-Agent", ""),
                }
            )

    def _hello(self) -> None:
        range_header = self.headers.get("Range")
        if range_header == "bytes=0-5":
            self._write(
                206,
                {"Content-Type": "text/plain", "Content-Range": "0-5/11"},
                HELLO[0:5],
            )
            return
        accept = self.headers.get("Accept-Encoding", "")
        if "gzip" in accept:
            self._write(
                200,
                {"Content-Type": "text/plain", "Content-Encoding": "gzip"},
                gzip.compress(HELLO),
            )
        elif "deflate" in accept:
            self._write(
                200,
                {"Content-Type": "text/plain", "Content-Encoding": "deflate"},
                zlib.compress(HELLO),
            )
        else:
            self._write(200, {"Content-Type": "text/plain"}, HELLO)

    def _dispatch(self) -> None:
        self._record()
        body = self._read_body()
        path = urlparse(self.path).path
        state = self.server.state

        if path == "/":
            self._hello()
        elif path == "/header-reflect":
            self._write(200, {"Content-Type": "text/plain", "foo": self.headers.get("foo", "")}, HELLO)
        elif path == "/basic-auth":
            scheme, _, token = (self.headers.get("Authorization") or "").partition(" ")
            username, password = "", ""
            if scheme.lower() == "basic" and token:
                username, _, password = base64.b64decode(token).decode("utf-8").partition(":")
            payload = json.dumps({"username": username, "password": password}).encode()
            self._write(200, {"Content-Type": "application/json"}, payload)
        elif path == "/redirect":
            self._write(302, {"Location": "/"})
        elif path == "/redirect-loop":
            self._write(302, {"Location": "/redirect-loop"})
        elif path == "/see-other":
            self._write(303, {"Location": "/echo"})
        elif path == "/temporary":
            self._write(307, {"Location": "/echo"})
        elif path == "/echo":
            payload = json.dumps(
                {
                    "method": self.command,
                    "body_length": len(body),
                    "content_type": self.headers.get("Content-Type"),
                }
            ).encode()
            self._write(200, {"Content-Type": "application/json"}, payload)
        elif path == "/large":
            self._write(200, {"Content-Type": "application/octet-stream"}, state.large_payload)
        elif path == "/chunked":
            self.send_response(200)
            self.send_header("Content-Type", "application/octet-stream")
            self.send_header("Connection", "close")
            self.end_headers()
            for _ in range(4):
                self.wfile.write(state.large_payload[:1024])
                self.wfile.flush()
        elif path == "/corrupt-gzip":
            self._write(
                200,
                {"Content-Type": "text/plain", "Content-Encoding": "gzip"},
                b"\x1f\x8b\x08\x00definitely not deflate data",
            )
        elif path == "/slow":
            time.sleep(1.0)
            self._write(200, {"Content-Type": "text/plain"}, HELLO)
        elif path.startswith("/status/"):
            status = int(path.rsplit("/", 1)[1])
            self._write(status, {"Content-Type": "text/plain"}, b"status")
        else:
            self._write(404, {"Content-Type": "text/plain"}, b"not found")

    do_GET = _dispatch
    do_HEAD = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch


def _serve(server: _StatefulServer):
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return thread


@pytest.fixture(scope="session")
def http_server():
    """Yield ``(base_url, state)`` for a plain HTTP server on 127.0.0.1."""

    state = _ServerState()
    server = _StatefulServer(("127.0.0.1", 0), _Handler, state)
    thread = _serve(server)
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}", state
    server.shutdown()
    server.server_close()
    thread.join()


@pytest.fixture(scope="session")
def https_server():
    """Yield ``(port, state)`` for a TLS server presenting ``http-get.lan``."""

    state = _ServerState()
    server = _StatefulServer(("127.0.0.1", 0), _Handler, state)
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(TLS_DIR / "server.pem", TLS_DIR / "server.key")
    server.socket = context.wrap_socket(server.socket, server_side=True)
    thread = _serve(server)
    port = server.server_address[1]
    yield port, state
    server.shutdown()
    server.server_close()
    thread.join()


@pytest.fixture(scope="session")
def ca_pem() -> str:
    return (TLS_DIR / "ca.pem").read_text(encoding="ascii")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Pin engine defaults so ``HTTP_GET_*`` variables on the host do not leak in."""

    for name in (
        "HTTP_GET_TIMEOUT_SEC",
        "HTTP_GET_CONNECT_TIMEOUT_SEC",
        "HTTP_GET_MAX_REDIRECTS",
        "HTTP_GET_USER_AGENT",
        "HTTP_GET_ACCEPT_ENCODING",
        "HTTP_GET_LOG_LEVEL",
        "HTTP_GET_LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings(EngineSettings(timeout_sec=10.0, connect_timeout_sec=5.0))
    yield
    reset_settings()


class _RawStream(httpx.AsyncByteStream):
    """Unread response body handed out chunk by chunk, like a socket would."""

    def __init__(self, chunks):
        self._chunks = list(chunks)

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk


@pytest.fixture
def streamed_response():
    """Factory for ``httpx.Response`` objects whose body has not been read yet.

    ``httpx.Response(content=...)`` reads its body on construction, which leaves
    nothing for ``aiter_raw``; mock transports return these instead.
    """

    def _build(status_code, *, headers=None, body=b"", chunks=None):
        return httpx.Response(status_code, headers=headers, stream=_RawStream(chunks or [body]))

    return _build
