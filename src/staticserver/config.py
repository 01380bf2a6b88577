"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the static file server.

=============================================================================
WHY FROZEN?
=============================================================================

Every worker thread reads the configuration on every request. If it could
change underneath them, a request could see "gzip on" when choosing an
encoding and "gzip off" when writing headers. A frozen dataclass removes
the question: build it once at startup, then only read it.

    ServerConfig.from_env()            ← environment
        .with_overrides(**cli_args)    ← command line (returns a NEW config)
        .validate()                    ← fail fast, before any socket opens

=============================================================================
FEATURE TOGGLES
=============================================================================

    ┌────────────────┬─────────┬───────────────────────────────────────────┐
    │ Feature        │ Default │ Effect                                    │
    ├────────────────┼─────────┼───────────────────────────────────────────┤
    │ https          │ on      │ TLS listener on https_port                │
    │ http2          │ on      │ requested; served as HTTP/1.1 (warning)   │
    │ http_redirect  │ on      │ plain-HTTP listener answers 301 → https   │
    │ http           │ off     │ plain-HTTP listener serves files instead  │
    │ brotli         │ on      │ "br" content coding offered               │
    │ gzip           │ on      │ "gzip" content coding offered             │
    │ cors           │ off     │ CORS headers + OPTIONS preflight (204)    │
    │ cache_control  │ on      │ Cache-Control: public, max-age=N          │
    │ etag           │ on      │ ETag + If-None-Match → 304                │
    └────────────────┴─────────┴───────────────────────────────────────────┘

At least one of https / http / http_redirect must be on, or the process
would have nothing to listen with.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    STATIC_ROOT            Directory to serve (default: ./public)
    STATIC_HOST            Bind address (default: 0.0.0.0)
    STATIC_HTTPS_PORT      TLS port (default: 443)
    STATIC_HTTP_PORT       Plain port (default: 80)
    STATIC_CERT / _KEY     PEM paths (default: ./certs/cert.pem, key.pem)
    STATIC_MAX_AGE         Cache-Control max-age seconds (default: 3600)
    STATIC_ETAG_MODE       strong | weak (default: strong)
    STATIC_WORKERS         Max worker threads (default: 16)
    STATIC_LOG_LEVEL       DEBUG | INFO | WARNING | ERROR (default: INFO)
    STATIC_LOG_FORMAT      text | json (default: text)
    STATIC_HTTPS, STATIC_HTTP2, STATIC_REDIRECT, STATIC_HTTP,
    STATIC_BROTLI, STATIC_GZIP, STATIC_CORS, STATIC_CACHE_CONTROL,
    STATIC_ETAG            Feature toggles: 1/0, true/false, yes/no, on/off

=============================================================================
"""

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_bool(value: str) -> bool:
    """Parse an environment-style boolean; raises ValueError on anything else."""
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


@dataclass(frozen=True)
class Features:
    """Feature toggles. See the table in the module docstring."""

    https: bool = True
    http2: bool = True
    http_redirect: bool = True
    http: bool = False
    brotli: bool = True
    gzip: bool = True
    cors: bool = False
    cache_control: bool = True
    etag: bool = True

    @property
    def any_listener(self) -> bool:
        return self.https or self.http or self.http_redirect


# Environment variable → Features field
_FEATURE_ENV = {
    "STATIC_HTTPS": "https",
    "STATIC_HTTP2": "http2",
    "STATIC_REDIRECT": "http_redirect",
    "STATIC_HTTP": "http",
    "STATIC_BROTLI": "brotli",
    "STATIC_GZIP": "gzip",
    "STATIC_CORS": "cors",
    "STATIC_CACHE_CONTROL": "cache_control",
    "STATIC_ETAG": "etag",
}


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    CONTENT         root_dir, index_files, cache_max_age, etag_mode, chunk_size
    LISTENERS       host, https_port, http_port, cert_path, key_path
    FEATURES        features (see Features)
    TRANSPORT       backlog, buffer_size, timeout, keep_alive, ...
    THREADING       min_workers, max_workers
    LOGGING         log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "./public"
    """
    Directory whose files are served. Made absolute at construction so
    the root boundary check always compares absolute paths.
    """

    index_files: tuple = ("index.html", "index.htm")
    """Files tried, in order, when a directory is requested."""

    cache_max_age: int = 3600
    """Cache-Control max-age in seconds."""

    etag_mode: str = "strong"
    """
    "strong": md5 of file content (exact, costs a full read).
    "weak": W/"<size>-<mtime_ns>" (one stat, no read).
    """

    chunk_size: int = 64 * 1024
    """Bytes per body chunk read from disk and written to the socket."""

    gzip_level: int = 6
    brotli_quality: int = 5

    # ─────────────────────────────────────────────────────────────────────
    # LISTENERS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    https_port: int = 443
    """TLS port. 0 lets the OS pick one (tests)."""

    http_port: int = 80
    cert_path: str = "./certs/cert.pem"
    key_path: str = "./certs/key.pem"

    features: Features = field(default_factory=Features)

    # ─────────────────────────────────────────────────────────────────────
    # TRANSPORT
    # ─────────────────────────────────────────────────────────────────────

    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 64 * 1024
    """
    Cap on the request head. This server reads no request bodies, so
    anything beyond a few KB of headers is abuse.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    server_name: str = "staticserver/1.0"

    def __post_init__(self):
        # frozen: object.__setattr__ is the only way to normalize in place
        object.__setattr__(self, "root_dir", os.path.abspath(self.root_dir))
        object.__setattr__(self, "index_files", tuple(self.index_files))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from STATIC_* environment variables.

        Unset variables keep their defaults. Malformed values raise
        ValueError naming the variable.

            STATIC_ROOT=/srv/www STATIC_HTTP=1 STATIC_HTTPS=0 python -m staticserver
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        feature_defaults = Features()

        def get(name: str, default, convert=str):
            raw = env.get(name)
            if raw is None or raw == "":
                return default
            try:
                return convert(raw)
            except ValueError as e:
                raise ValueError(f"{name}: {e}") from e

        features = Features(**{
            attr: get(var, getattr(feature_defaults, attr), parse_bool)
            for var, attr in _FEATURE_ENV.items()
        })

        workers = get("STATIC_WORKERS", defaults.max_workers, int)

        return cls(
            root_dir=get("STATIC_ROOT", "./public"),
            host=get("STATIC_HOST", defaults.host),
            https_port=get("STATIC_HTTPS_PORT", defaults.https_port, int),
            http_port=get("STATIC_HTTP_PORT", defaults.http_port, int),
            cert_path=get("STATIC_CERT", defaults.cert_path),
            key_path=get("STATIC_KEY", defaults.key_path),
            cache_max_age=get("STATIC_MAX_AGE", defaults.cache_max_age, int),
            etag_mode=get("STATIC_ETAG_MODE", defaults.etag_mode),
            min_workers=min(defaults.min_workers, workers),
            max_workers=workers,
            log_level=get("STATIC_LOG_LEVEL", defaults.log_level),
            log_format=get("STATIC_LOG_FORMAT", defaults.log_format),
            features=features,
        )

    def with_overrides(self, **changes) -> "ServerConfig":
        """
        Return a copy with `changes` applied. None values are ignored, so
        unset CLI options can be passed straight through.

        Feature toggles may be given by name (gzip=False) and are folded
        into `features`.
        """
        changes = {k: v for k, v in changes.items() if v is not None}

        feature_names = set(Features.__dataclass_fields__)
        feature_changes = {k: changes.pop(k) for k in list(changes) if k in feature_names}
        if feature_changes:
            changes["features"] = replace(self.features, **feature_changes)

        return replace(self, **changes)

    def validate(self) -> "ServerConfig":
        """
        Validate configuration values. Returns self for chaining.

        Raises:
            ValueError: On the first invalid setting found.
        """
        if not self.features.any_listener:
            raise ValueError(
                "At least one listener must be enabled (https, http or http_redirect)"
            )

        for name in ("https_port", "http_port"):
            port = getattr(self, name)
            if not 0 <= port < 65536:
                raise ValueError(f"Invalid {name}: {port}. Must be 0-65535.")

        if self.features.https and (self.features.http or self.features.http_redirect):
            if self.https_port == self.http_port and self.https_port != 0:
                raise ValueError("https_port and http_port must differ")

        if self.cache_max_age < 0:
            raise ValueError(f"cache_max_age must be >= 0, got {self.cache_max_age}")

        if self.etag_mode not in ("strong", "weak"):
            raise ValueError(f"etag_mode must be 'strong' or 'weak', got {self.etag_mode!r}")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.chunk_size < 1024:
            raise ValueError("chunk_size must be >= 1024")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if not self.index_files:
            raise ValueError("index_files must name at least one file")

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"Root directory does not exist: {self.root_dir}")

        return self


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Frozen dataclasses: safe to share across worker threads
# 2. Features grouped separately from transport knobs
# 3. from_env() for deployment, with_overrides() for the CLI
# 4. validate() fails fast before any socket is opened
# =============================================================================
