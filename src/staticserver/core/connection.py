"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket (plain TCP or TLS) with the operations
the server loop needs: read one request head, send a response head,
stream a body, close cleanly.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

recv() returns whatever bytes have arrived, not "one request". A request
head can arrive split across several recv() calls, and two pipelined
requests can arrive in one. The connection therefore buffers until it
sees the blank line that ends the headers, hands out exactly one request,
and keeps any leftover bytes for the next call.

    recv() → "GET /a.css HTTP/1.1\\r\\nHo"
    recv() → "st: x\\r\\n\\r\\nGET /b.js HTTP/1.1\\r\\n..."
                            └─ end of request 1   └─ kept in buffer

=============================================================================
SENDING BODIES
=============================================================================

Heads are small and sent in one sendall(). Bodies are iterators of
bounded chunks, sent one chunk at a time so a slow client blocks the
worker (backpressure) instead of growing a buffer:

    Content-Length known         raw chunks
    HTTP/1.1, length unknown     chunked:  "<hex len>\\r\\n<chunk>\\r\\n" ... "0\\r\\n\\r\\n"
    HTTP/1.0, length unknown     raw chunks, then close the connection

The body stream is closed in a finally block whatever happens, so the
file descriptor is released on success, on client disconnect, and on a
read error alike.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► HANDSHAKE ──► READING ──► PROCESSING ──► WRITING ──┐
     │       (TLS only)      │                           │      ▼
     │                       │                           │  KEEP_ALIVE ──► READING
     ▼                       ▼                           ▼
    CLOSING ◄────────────────┴───────────────────────────┘
      │
      ▼
    CLOSED

=============================================================================
"""

import logging
import socket
import ssl
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from ..http.request import HTTPParseError
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    HANDSHAKE = "handshake"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One client connection.

    Attributes:
        socket: Client socket; an ssl.SSLSocket on the HTTPS listener.
        address: Client's (ip, port).
        id: Short identifier for log correlation.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 64 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def is_tls(self) -> bool:
        return isinstance(self.socket, ssl.SSLSocket)

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    # =========================================================================
    # TLS
    # =========================================================================

    def handshake(self) -> bool:
        """
        Complete the TLS handshake on a TLS socket. No-op for plain TCP.

        Runs in the worker thread: the accept loop wraps sockets without
        handshaking, so one slow client cannot stall accept().

        Returns:
            True if the connection is ready for HTTP, False otherwise.
        """
        if not self.is_tls:
            return True

        self.state = ConnectionState.HANDSHAKE
        try:
            self.socket.do_handshake()
            return True
        except (ssl.SSLError, OSError) as e:
            logger.debug(f"[{self.id}] TLS handshake failed: {e}")
            return False

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request (head plus any Content-Length body).

        Returns:
            The request bytes, or None if the client closed the
            connection or an idle keep-alive connection timed out.

        Raises:
            TimeoutError: The first request did not arrive in time.
            HTTPParseError: 413, the request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            # ─────────────────────────────────────────────────────────────
            # HEADERS: buffer until the blank line
            # ─────────────────────────────────────────────────────────────
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                if len(self._buffer) > self.max_request_size:
                    raise HTTPParseError(
                        f"Request too large: {len(self._buffer)} bytes",
                        HTTPStatus.PAYLOAD_TOO_LARGE,
                    )

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            if body_start + content_length > self.max_request_size:
                raise HTTPParseError(
                    f"Request too large: {content_length} byte body",
                    HTTPStatus.PAYLOAD_TOO_LARGE,
                )

            # ─────────────────────────────────────────────────────────────
            # BODY: nothing here reads it, but it must be consumed so the
            # next pipelined request starts at the right byte
            # ─────────────────────────────────────────────────────────────
            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0 and not self._buffer:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            if self.state != ConnectionState.CLOSED:
                self.socket.settimeout(self.timeout)

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError, ssl.SSLError):
            return b""

    @staticmethod
    def _parse_content_length(headers: bytes) -> int:
        for line in headers.split(b"\r\n")[1:]:
            name, sep, value = line.partition(b":")
            if sep and name.strip().lower() == b"content-length":
                try:
                    return max(0, int(value.strip()))
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_head(self, data: bytes) -> bool:
        """
        Send a response head, or a whole small response, in one sendall().

        Returns:
            True on success, False if the client is gone.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def send_body(self, chunks: Iterable[bytes], chunked: bool = False) -> Optional[int]:
        """
        Stream a body, closing `chunks` afterwards no matter what.

        Args:
            chunks: Iterator of byte chunks with an optional close().
            chunked: Apply HTTP/1.1 chunked transfer coding.

        Returns:
            Payload bytes sent, or None if sending or reading failed
            part-way (the connection must then be dropped: the head is
            already out and cannot be amended).
        """
        self.state = ConnectionState.WRITING
        sent = 0
        try:
            for chunk in chunks:
                if not chunk:
                    continue
                if chunked:
                    self.socket.sendall(b"%X\r\n" % len(chunk) + chunk + b"\r\n")
                else:
                    self.socket.sendall(chunk)
                sent += len(chunk)
                self.last_activity = time.time()

            if chunked:
                self.socket.sendall(b"0\r\n\r\n")
            return sent

        except OSError as e:
            logger.warning(f"[{self.id}] Body aborted after {sent} bytes: {e}")
            return None

        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close gracefully: FIN, drain briefly, release the descriptor.
        Idempotent.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # includes socket.timeout and ssl.SSLError

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
