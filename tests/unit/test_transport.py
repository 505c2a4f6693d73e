"""Tests for onchain_secrets.network.transport — HttpTransport against a local server."""
from __future__ import annotations

import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Iterator

import pytest

from onchain_secrets.errors import CommunicationError
from onchain_secrets.network.roster import ServerIdentity
from onchain_secrets.network.transport import HttpTransport


class EchoHandler(BaseHTTPRequestHandler):
    """Echoes the request body; the ``Fail`` service answers HTTP 500."""

    seen: list[tuple[str, str, bytes]] = []

    def do_POST(self) -> None:  # noqa: N802
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        type(self).seen.append((self.path, self.headers.get("X-Test", ""), body))
        if self.path.endswith("/Fail"):
            self._reply(500, b"service exploded")
            return
        self._reply(200, body)

    def _reply(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        pass


@pytest.fixture()
def server() -> Iterator[ServerIdentity]:
    EchoHandler.seen = []
    httpd = HTTPServer(("127.0.0.1", 0), EchoHandler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield ServerIdentity(f"tls://127.0.0.1:{httpd.server_address[1]}")
    finally:
        httpd.shutdown()
        httpd.server_close()


def _unused_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestHttpTransport:
    def test_url_uses_host_port_and_service(self) -> None:
        url = HttpTransport().url_for(ServerIdentity("tls://10.0.0.1:7770"), "Status/Request")
        assert url == "http://10.0.0.1:7770/Status/Request"

    def test_https_scheme(self) -> None:
        url = HttpTransport(scheme="https").url_for(ServerIdentity("10.0.0.1:7770"), "X/Y")
        assert url == "https://10.0.0.1:7770/X/Y"

    def test_posts_payload_and_returns_body(self, server: ServerIdentity) -> None:
        reply = HttpTransport().send(server, "Status/Request", b'{"a": 1}', timeout=5)
        assert reply == b'{"a": 1}'
        assert EchoHandler.seen[0][0] == "/Status/Request"

    def test_sends_extra_headers(self, server: ServerIdentity) -> None:
        HttpTransport(headers={"X-Test": "yes"}).send(server, "Echo/Me", b"{}", timeout=5)
        assert EchoHandler.seen[0][1] == "yes"

    def test_http_error_becomes_communication_error(self, server: ServerIdentity) -> None:
        with pytest.raises(CommunicationError, match="HTTP 500"):
            HttpTransport().send(server, "Service/Fail", b"{}", timeout=5)

    def test_unreachable_server_becomes_communication_error(self) -> None:
        unreachable = ServerIdentity(f"127.0.0.1:{_unused_port()}")
        with pytest.raises(CommunicationError, match="Could not reach"):
            HttpTransport().send(unreachable, "Status/Request", b"{}", timeout=2)
