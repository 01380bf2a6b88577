"""
=============================================================================
LISTENING SOCKETS
=============================================================================

One SocketServer per listener. The HTTPS listener carries an
ssl.SSLContext and wraps every accepted socket with it; the HTTP
listener (static or redirect) hands out plain sockets.

    ┌──────────────────────────────┐      ┌──────────────────────────────┐
    │ SocketServer "https"  :443   │      │ SocketServer "http"  :80     │
    │ ssl_context = TLS context    │      │ ssl_context = None           │
    └──────────────┬───────────────┘      └──────────────┬───────────────┘
                   │ accept loop (own thread)            │ accept loop
                   ▼                                     ▼
            Connection(SSLSocket)                 Connection(socket)
                   └────────────── handler(conn) ────────┘
                                       │
                                       ▼
                                  ThreadPool

bind() and serve_forever() are separate steps so that every listener
binds (and fails loudly on a taken port or missing privilege) before any
of them starts accepting.

=============================================================================
SOCKET OPTIONS
=============================================================================

    SO_REUSEADDR   rebind immediately after a restart (TIME_WAIT)
    SO_REUSEPORT   several processes may share the port, where supported
    TCP_NODELAY    do not hold small writes (response heads) back
    settimeout(1)  accept() wakes up every second to notice shutdown

=============================================================================
TLS HANDSHAKE PLACEMENT
=============================================================================

Accepted sockets are wrapped with do_handshake_on_connect=False. The
handshake is then run by the worker (Connection.handshake), so a client
that connects and goes silent occupies one worker instead of the accept
loop.

=============================================================================
"""

import logging
import socket
import ssl
import threading
from typing import Callable, Optional, Tuple

from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    TCP listener feeding Connections to a callback.

        server = SocketServer("0.0.0.0", 8080, name="http")
        server.bind()
        server.serve_forever(pool_submit)   # blocks until shutdown()
    """

    def __init__(
        self,
        host: str,
        port: int,
        name: str = "http",
        backlog: int = 128,
        ssl_context: Optional[ssl.SSLContext] = None,
        buffer_size: int = 8192,
        timeout: Optional[float] = 30.0,
        keep_alive_timeout: float = 5.0,
        max_request_size: int = 64 * 1024,
    ):
        self.host = host
        self.port = port
        self.name = name
        self.backlog = backlog
        self.ssl_context = ssl_context
        self.buffer_size = buffer_size
        self.timeout = timeout
        self.keep_alive_timeout = keep_alive_timeout
        self.max_request_size = max_request_size

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._stopped = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_tls(self) -> bool:
        return self.ssl_context is not None

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); reports the real port when bound to port 0."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.host, self.port)

    def _create_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        except (AttributeError, OSError):
            pass  # not available on this platform
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def bind(self):
        """
        Create, bind and listen.

        Raises:
            OSError: The address is in use or the port needs privileges.
        """
        sock = self._create_socket()
        try:
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind {self.name} listener to {self.host}:{self.port}: {e}")
            raise

        sock.listen(self.backlog)
        self._socket = sock
        host, port = self.address
        scheme = "https" if self.is_tls else "http"
        logger.info(f"{self.name.upper()} listener bound to {scheme}://{host}:{port}")

    def serve_forever(self, connection_handler: Callable[[Connection], None]):
        """
        Accept until shutdown(), passing each Connection to the handler.
        Binds first if bind() has not been called.
        """
        if self._socket is None:
            self.bind()

        self._running = True
        self._stopped.clear()
        try:
            self._accept_loop(connection_handler)
        finally:
            self.close()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"{self.name} accept error: {e}")
                break

            logger.debug(f"Accepted {self.name} connection from {client_address[0]}:{client_address[1]}")

            if self.ssl_context is not None:
                try:
                    client_socket = self.ssl_context.wrap_socket(
                        client_socket,
                        server_side=True,
                        do_handshake_on_connect=False,
                    )
                except (ssl.SSLError, OSError) as e:
                    logger.debug(f"TLS wrap failed for {client_address[0]}: {e}")
                    client_socket.close()
                    continue

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.buffer_size,
                timeout=self.timeout,
                keep_alive_timeout=self.keep_alive_timeout,
                max_request_size=self.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop the accept loop. Safe from any thread; idempotent."""
        if self._running:
            logger.info(f"Shutting down {self.name} listener...")
        self._running = False

    def close(self):
        """Release the listening socket. Idempotent."""
        self._running = False
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._stopped.set()
        logger.info(f"{self.name.upper()} listener stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)
