"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Wires the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           HTTPServer                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   SocketServer "https" (TLS) ──┐                                    │
    │                                ├──► ThreadPool ──► _process_connection
    │   SocketServer "http" ─────────┘                        │           │
    │                                                         ▼           │
    │                                   RequestParser ──► HTTPRequest     │
    │                                                         │           │
    │      https / http (serving):  Logging ─► CORS? ─► StaticFileHandler │
    │      http (redirect mode):    Logging ─► HTTPSRedirectHandler       │
    │                                                         │           │
    │                                                         ▼           │
    │                                 HTTPResponse plan ──► _send_response│
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Listeners per feature toggles:

    https on          → TLS listener on https_port, static pipeline
    http on           → plain listener on http_port, static pipeline
    http_redirect on  → plain listener on http_port, 301 → https
    (http wins over http_redirect when both are on)

=============================================================================
RESPONSE FRAMING
=============================================================================

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │ Response                     │ Framing                              │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │ inline body / empty          │ Content-Length (0 for 301 and 416)   │
    │ 204, 304                     │ no body, no length                   │
    │ FULL_FILE / SLICED_FILE      │ Content-Length from the handler      │
    │ ENCODED_FILE, HTTP/1.1       │ Transfer-Encoding: chunked           │
    │ ENCODED_FILE, HTTP/1.0       │ body until close, Connection: close  │
    │ any response to HEAD         │ same head, body never sent           │
    └──────────────────────────────┴──────────────────────────────────────┘

The response's stream is closed in a finally block after every send,
including HEAD (never iterated) and aborted sends.

=============================================================================
"""

import logging
import signal
import ssl
import threading
from typing import Callable, Dict, List, Optional

from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer, ThreadPool
from .handlers import HTTPSRedirectHandler, StaticFileHandler
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, text_response,
)
from .middleware import CORSMiddleware, LoggingMiddleware, MiddlewarePipeline


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


class ServerStartupError(RuntimeError):
    """The server could not start (TLS material, bind failure)."""


class HTTPServer:
    """
    Static file server with HTTPS, HTTP and redirect listeners.

    =========================================================================
    USAGE
    =========================================================================

        config = ServerConfig(root_dir="./public").validate()
        HTTPServer(config).run()        # blocks until SIGINT / SIGTERM

    Or, from tests and embedding code:

        server = HTTPServer(config)
        server.start()                  # returns once listeners are bound
        port = server.port("http")
        ...
        server.stop()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = (config or ServerConfig()).validate()

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )

        self.static_handler = StaticFileHandler.from_config(self.config)
        self._static_app = self._build_static_app()
        self._redirect_app = self._build_redirect_app()

        self._listeners: Dict[str, SocketServer] = {}
        self._apps: Dict[str, Handler] = {}
        self._accept_threads: List[threading.Thread] = []

        self._running = False
        self._stop_event = threading.Event()

    # =========================================================================
    # APPLICATION PIPELINES
    # =========================================================================

    def _access_logging(self) -> LoggingMiddleware:
        return LoggingMiddleware(log_format=self.config.log_format)

    def _build_static_app(self) -> Handler:
        pipeline = MiddlewarePipeline().add(self._access_logging())
        if self.config.features.cors:
            pipeline.add(CORSMiddleware())
        return pipeline.wrap(self.static_handler)

    def _build_redirect_app(self) -> Handler:
        redirect = HTTPSRedirectHandler(
            https_port=self.config.https_port,
            default_host=self.config.host,
        )
        return MiddlewarePipeline().add(self._access_logging()).wrap(redirect)

    # =========================================================================
    # LISTENERS
    # =========================================================================

    def _build_ssl_context(self) -> ssl.SSLContext:
        """
        TLS context for the HTTPS listener.

        Raises:
            ServerStartupError: Certificate or key missing or unreadable.
        """
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        try:
            context.load_cert_chain(self.config.cert_path, self.config.key_path)
        except (OSError, ssl.SSLError) as e:
            logger.error(
                f"Failed to load TLS certificate {self.config.cert_path} "
                f"/ key {self.config.key_path}: {e}"
            )
            raise ServerStartupError(f"Cannot load TLS certificate: {e}") from e

        if self.config.features.http2:
            logger.warning("HTTP/2 requested but not supported; serving HTTP/1.1 over TLS")
        context.set_alpn_protocols(["http/1.1"])
        return context

    def _make_listener(self, name: str, port: int,
                       ssl_context: Optional[ssl.SSLContext] = None) -> SocketServer:
        cfg = self.config
        return SocketServer(
            host=cfg.host,
            port=port,
            name=name,
            backlog=cfg.backlog,
            ssl_context=ssl_context,
            buffer_size=cfg.buffer_size,
            timeout=cfg.timeout,
            keep_alive_timeout=cfg.keep_alive_timeout,
            max_request_size=cfg.max_request_size,
        )

    def _create_listeners(self):
        features = self.config.features

        if features.https:
            self._listeners["https"] = self._make_listener(
                "https", self.config.https_port, self._build_ssl_context()
            )
            self._apps["https"] = self._static_app

        if features.http:
            self._listeners["http"] = self._make_listener("http", self.config.http_port)
            self._apps["http"] = self._static_app
        elif features.http_redirect:
            if not features.https:
                logger.warning("HTTP redirect enabled without HTTPS; redirects will point nowhere")
            self._listeners["http"] = self._make_listener("http", self.config.http_port)
            self._apps["http"] = self._redirect_app

    def port(self, name: str) -> int:
        """Bound port of a listener ("https" or "http")."""
        return self._listeners[name].address[1]

    @property
    def listeners(self) -> Dict[str, SocketServer]:
        return dict(self._listeners)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self):
        """
        Bind every listener and start accepting in background threads.

        Raises:
            ServerStartupError: TLS material could not be loaded or a
                port could not be bound. Nothing is left running.
        """
        if self._running:
            return

        self._create_listeners()
        try:
            for listener in self._listeners.values():
                listener.bind()
        except OSError as e:
            for listener in self._listeners.values():
                listener.close()
            self._listeners.clear()
            raise ServerStartupError(str(e)) from e

        self._thread_pool.start()
        self._running = True
        self._stop_event.clear()

        for name, listener in self._listeners.items():
            thread = threading.Thread(
                target=listener.serve_forever,
                args=(self._connection_acceptor(name),),
                name=f"accept-{name}",
                daemon=True,
            )
            thread.start()
            self._accept_threads.append(thread)

        self._print_startup_banner()

    def run(self):
        """Start, then block until SIGINT / SIGTERM or shutdown()."""
        self._setup_logging()
        self.start()

        if threading.current_thread() is threading.main_thread():
            self._install_signal_handlers()

        try:
            while not self._stop_event.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self.stop()

    def shutdown(self):
        """Ask the server to stop. Safe from signal handlers and other threads."""
        self._stop_event.set()
        for listener in self._listeners.values():
            listener.shutdown()

    def stop(self, timeout: float = 10.0):
        """Stop accepting, let workers finish, release the sockets."""
        if not self._running:
            return

        logger.info("Shutting down server...")
        self.shutdown()
        for thread in self._accept_threads:
            thread.join(timeout=2.0)
        self._accept_threads.clear()

        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=timeout)
        self._listeners.clear()
        self._apps.clear()
        logger.info("Server stopped")

    def _install_signal_handlers(self):
        def handle_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        signal.signal(signal.SIGTERM, handle_signal)
        signal.signal(signal.SIGINT, handle_signal)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticserver").setLevel(level)

    def _print_startup_banner(self):
        logger.info(f"{self.config.server_name} serving {self.config.root_dir}")
        for name, listener in self._listeners.items():
            host, port = listener.address
            scheme = "https" if listener.is_tls else "http"
            mode = "redirect → https" if self._apps[name] is self._redirect_app else "static"
            logger.info(f"  {scheme}://{host}:{port} ({mode})")
        features = self.config.features
        enabled = [name for name in ("brotli", "gzip", "etag", "cache_control", "cors")
                   if getattr(features, name)]
        logger.info(f"  features: {', '.join(enabled) or 'none'}")
        logger.info(f"  workers: {self.config.min_workers}-{self.config.max_workers}")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _connection_acceptor(self, name: str) -> Callable[[Connection], None]:
        app = self._apps[name]

        def accept(conn: Connection):
            # Blocks when the queue is full; accept() then stops draining
            # the kernel backlog.
            self._thread_pool.submit(self._process_connection, args=(conn, app))

        return accept

    def _process_connection(self, conn: Connection, app: Handler):
        """Keep-alive loop for one connection (runs in a worker thread)."""
        with conn:
            if not conn.handshake():
                return

            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        self._send_error(conn, e.status_code, str(e))
                        break

                    conn.state = ConnectionState.PROCESSING
                    try:
                        response = app(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = text_response(
                            HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error"
                        )

                    if not self._send_response(conn, request, response):
                        break
                    conn.set_keep_alive()

                except HTTPParseError as e:
                    self._send_error(conn, e.status_code, str(e))
                    break
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

    def _send_response(self, conn: Connection, request: HTTPRequest,
                       response: HTTPResponse) -> bool:
        """
        Send one response plan. Returns True if the connection may be
        reused for another request.
        """
        try:
            keep_alive = (
                request.is_keep_alive
                and self.config.keep_alive
                and response.headers.get("Connection", "").lower() != "close"
            )
            send_body = request.method != "HEAD" and response.status.allows_body

            chunked = False
            if response.is_streaming and response.content_length is None:
                if request.version == "HTTP/1.1":
                    chunked = True
                    response.headers["Transfer-Encoding"] = "chunked"
                else:
                    keep_alive = False

            if keep_alive:
                response.headers["Connection"] = "keep-alive"
                response.headers["Keep-Alive"] = f"timeout={int(self.config.keep_alive_timeout)}"
            else:
                response.headers["Connection"] = "close"

            if not response.is_streaming:
                if send_body:
                    data = response.to_bytes(self.config.server_name)
                else:
                    data = response.head_bytes(self.config.server_name)
                return conn.send_head(data) and keep_alive

            if not conn.send_head(response.head_bytes(self.config.server_name)):
                return False
            if not send_body:
                return keep_alive

            expected = response.content_length
            sent = conn.send_body(response.stream, chunked=chunked)
            if sent is None:
                return False
            if expected is not None and sent != expected:
                # File changed size after the head went out.
                logger.warning(
                    f"[{conn.id}] {request.path}: sent {sent} of {expected} declared bytes"
                )
                return False
            return keep_alive

        finally:
            response.close()

    def _send_error(self, conn: Connection, status: int, message: str):
        response = text_response(HTTPStatus(status), message)
        response.headers["Connection"] = "close"
        conn.send_head(response.to_bytes(self.config.server_name))


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """Build a server from `config`, or from the environment when omitted."""
    return HTTPServer(config or ServerConfig.from_env())


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. One SocketServer per enabled listener, all feeding one ThreadPool
# 2. Handlers return plans; _send_response owns framing and HEAD
# 3. Streams are closed in finally on every path
# 4. run() installs signal handlers only when on the main thread
# =============================================================================
