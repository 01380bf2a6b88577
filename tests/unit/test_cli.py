"""
Unit tests for command-line parsing.
"""

import pytest

from staticserver.__main__ import build_parser, config_from_args, main
from staticserver.config import ServerConfig


def parse(public_dir, *argv) -> ServerConfig:
    args = build_parser().parse_args(["--root", str(public_dir), *argv])
    return config_from_args(args, ServerConfig())


class TestCLI:

    def test_defaults_pass_through(self, public_dir):
        config = parse(public_dir)
        assert config.root_dir == str(public_dir)
        assert config.https_port == 443
        assert config.features.https is True

    def test_ports_and_tls(self, public_dir):
        config = parse(public_dir, "--https-port", "8443", "--http-port", "8080",
                       "--cert", "c.pem", "--key", "k.pem")
        assert (config.https_port, config.http_port) == (8443, 8080)
        assert (config.cert_path, config.key_path) == ("c.pem", "k.pem")

    def test_feature_toggles(self, public_dir):
        config = parse(public_dir, "--no-https", "--no-redirect", "--http",
                       "--cors", "--no-brotli", "--no-etag", "--no-cache-control")
        features = config.features
        assert (features.https, features.http_redirect, features.http) == (False, False, True)
        assert features.cors is True
        assert features.brotli is False
        assert features.gzip is True
        assert (features.etag, features.cache_control) == (False, False)

    def test_workers(self, public_dir):
        config = parse(public_dir, "--workers", "2")
        assert (config.min_workers, config.max_workers) == (2, 2)

    def test_caching_options(self, public_dir):
        config = parse(public_dir, "--max-age", "60", "--etag-mode", "weak")
        assert config.cache_max_age == 60
        assert config.etag_mode == "weak"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "1.0.0" in capsys.readouterr().out

    def test_invalid_config_exits_1(self, tmp_path, capsys):
        code = main(["--root", str(tmp_path / "missing")])
        assert code == 1
        assert "Root directory" in capsys.readouterr().err

    def test_missing_certificate_exits_1(self, public_dir, tmp_path, capsys):
        code = main([
            "--root", str(public_dir),
            "--https-port", "0", "--http-port", "0", "--no-redirect",
            "--cert", str(tmp_path / "nope.pem"), "--key", str(tmp_path / "nope.key"),
            "--log-level", "ERROR",
        ])
        assert code == 1
        assert "failed to start" in capsys.readouterr().err
