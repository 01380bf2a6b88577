"""
=============================================================================
STATICSERVER CLI ENTRY POINT
=============================================================================

    # HTTPS on 443 + redirect on 80, serving ./public (needs cert/key)
    python -m staticserver

    # Local development: plain HTTP only, no TLS material needed
    python -m staticserver --root ./site --no-https --no-redirect --http --http-port 8080

    # Unprivileged ports, CORS on, weak ETags
    python -m staticserver --https-port 8443 --http-port 8080 --cors --etag-mode weak

=============================================================================
PRECEDENCE
=============================================================================

    built-in defaults  <  STATIC_* environment  <  command line

Options left unset on the command line parse to None and are ignored by
ServerConfig.with_overrides(), so the environment value stands.

=============================================================================
EXIT CODES
=============================================================================

    0   clean shutdown (SIGINT / SIGTERM)
    1   invalid configuration, unreadable TLS material, or bind failure

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig
from .server import HTTPServer, ServerStartupError


# CLI flag → Features field
FEATURE_FLAGS = {
    "https": "https",
    "http": "http",
    "redirect": "http_redirect",
    "http2": "http2",
    "brotli": "brotli",
    "gzip": "gzip",
    "cors": "cors",
    "cache-control": "cache_control",
    "etag": "etag",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="HTTPS static file server with caching, ranges and compression",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  staticserver                                   # HTTPS :443, redirect :80
  staticserver --root ./site --https-port 8443   # Custom root and port
  staticserver --no-https --no-redirect --http   # Plain HTTP only
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--root", "-r", dest="root_dir",
                        help="Directory to serve (default: ./public)")
    parser.add_argument("--max-age", dest="cache_max_age", type=int,
                        help="Cache-Control max-age in seconds (default: 3600)")
    parser.add_argument("--etag-mode", choices=["strong", "weak"],
                        help="strong: md5 of content; weak: size and mtime")

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Address to bind (default: 0.0.0.0)")
    parser.add_argument("--https-port", type=int, help="TLS port (default: 443)")
    parser.add_argument("--http-port", type=int, help="Plain HTTP port (default: 80)")
    parser.add_argument("--cert", dest="cert_path", help="PEM certificate chain")
    parser.add_argument("--key", dest="key_path", help="PEM private key")

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE TOGGLES (--gzip / --no-gzip, ...)
    # ─────────────────────────────────────────────────────────────────────

    for flag, field_name in FEATURE_FLAGS.items():
        parser.add_argument(
            f"--{flag}",
            dest=field_name,
            action=argparse.BooleanOptionalAction,
            default=None,
            help=f"Enable or disable {flag}",
        )

    # ─────────────────────────────────────────────────────────────────────
    # RUNTIME
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--workers", "-w", type=int,
                        help="Maximum worker threads (default: 16)")
    parser.add_argument("--log-level", "-l",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: INFO)")
    parser.add_argument("--log-format", choices=["text", "json"],
                        help="Access log format (default: text)")
    parser.add_argument("--version", "-v", action="version",
                        version=f"%(prog)s {__version__}")

    return parser


def config_from_args(args: argparse.Namespace, base: ServerConfig) -> ServerConfig:
    """Overlay parsed CLI arguments on `base` and validate the result."""
    overrides = {
        name: getattr(args, name)
        for name in (
            "root_dir", "cache_max_age", "etag_mode", "host", "https_port",
            "http_port", "cert_path", "key_path", "log_level", "log_format",
            *FEATURE_FLAGS.values(),
        )
    }

    if args.workers is not None:
        overrides["max_workers"] = args.workers
        overrides["min_workers"] = min(base.min_workers, args.workers)

    return base.with_overrides(**overrides).validate()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args, ServerConfig.from_env())
    except ValueError as e:
        print(f"staticserver: configuration error: {e}", file=sys.stderr)
        return 1

    try:
        HTTPServer(config).run()
    except ServerStartupError as e:
        print(f"staticserver: failed to start: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
