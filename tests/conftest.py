"""
pytest configuration and fixtures.
"""

import os
import socket
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import HTTPServer, ServerConfig, Features
from staticserver.http import HTTPRequest, RequestParser


HELLO_TEXT = b"Hello, static world!\n"
INDEX_HTML = b"<!doctype html><title>home</title><h1>It works</h1>\n"
# Repetitive enough that brotli and gzip both shrink it
APP_JS = b"".join(b"console.log('line %d of a repetitive script');\n" % i for i in range(400))


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    """
    A document root:

        public/
        ├── index.html
        ├── hello.txt
        ├── app.js
        ├── .secret
        ├── archive.tar.gz
        ├── data.zip
        ├── docs/            (index.htm only)
        ├── empty/           (no index)
        └── assets/.env
    """
    root = tmp_path / "public"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "hello.txt").write_bytes(HELLO_TEXT)
    (root / "app.js").write_bytes(APP_JS)
    (root / ".secret").write_bytes(b"token=hunter2\n")
    (root / "archive.tar.gz").write_bytes(b"\x1f\x8b" + b"\x00" * 64)
    (root / "data.zip").write_bytes(b"PK\x03\x04" + b"\x00" * 64)

    (root / "docs").mkdir()
    (root / "docs" / "index.htm").write_bytes(b"<p>docs</p>\n")
    (root / "empty").mkdir()
    (root / "assets").mkdir()
    (root / "assets" / ".env").write_bytes(b"SECRET=1\n")

    # Sibling of the root whose name shares the root's prefix
    (tmp_path / "public-private").mkdir()
    (tmp_path / "public-private" / "leak.txt").write_bytes(b"leak\n")
    return root


@pytest.fixture
def parser() -> RequestParser:
    return RequestParser(max_request_size=64 * 1024)


@pytest.fixture
def make_request(parser: RequestParser):
    """Build an HTTPRequest from a method, target and extra headers."""

    def _make(target: str = "/", method: str = "GET", version: str = "HTTP/1.1", **headers) -> HTTPRequest:
        lines = [f"{method} {target} {version}", "Host: localhost"]
        lines += [f"{name.replace('_', '-')}: {value}" for name, value in headers.items()]
        raw = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
        return parser.parse(raw, ("127.0.0.1", 50000))

    return _make


@pytest.fixture
def config(public_dir: Path) -> ServerConfig:
    """Plain-HTTP config on an ephemeral port; no TLS material needed."""
    return ServerConfig(
        root_dir=str(public_dir),
        host="127.0.0.1",
        http_port=0,
        https_port=0,
        features=Features(https=False, http_redirect=False, http=True, http2=False),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


class TestServer:
    """Runs an HTTPServer on background threads and speaks raw HTTP to it."""

    __test__ = False  # not a test class

    def __init__(self, server: HTTPServer):
        self.server = server

    @property
    def port(self) -> int:
        return self.server.port("http")

    def start(self):
        self.server.start()

    def stop(self):
        self.server.stop(timeout=2.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw request bytes and read until the server closes."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                data = sock.recv(65536)
                if not data:
                    break
                chunks.append(data)
        return b"".join(chunks)

    def get(self, target: str, method: str = "GET", **headers) -> bytes:
        lines = [f"{method} {target} HTTP/1.1", "Host: localhost", "Connection: close"]
        lines += [f"{name.replace('_', '-')}: {value}" for name, value in headers.items()]
        return self.request(("\r\n".join(lines) + "\r\n\r\n").encode("latin-1"))


def split_response(raw: bytes):
    """Split raw response bytes into (status, headers dict lowercased, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


def decode_chunked(body: bytes) -> bytes:
    """Undo Transfer-Encoding: chunked."""
    out = b""
    while True:
        size_line, _, rest = body.partition(b"\r\n")
        size = int(size_line, 16)
        if size == 0:
            return out
        out += rest[:size]
        body = rest[size + 2:]


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A started plain-HTTP static server."""
    srv = TestServer(HTTPServer(config))
    srv.start()
    yield srv
    srv.stop()
