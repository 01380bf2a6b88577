"""
Unit tests for request path resolution.
"""

import os
import pytest

from staticserver.errors import BadRequest, Forbidden, NotFound
from staticserver.handlers.resolver import PathResolver, resolve


class TestResolveFiles:
    """Requests that map to a regular file."""

    def test_plain_file(self, public_dir):
        asset = PathResolver(str(public_dir)).resolve("/hello.txt")

        assert asset.path == os.path.join(str(public_dir), "hello.txt")
        assert asset.size == len(b"Hello, static world!\n")
        assert asset.extension == ".txt"
        assert asset.mtime_ns > 0

    def test_percent_encoded_name(self, public_dir):
        (public_dir / "a b.txt").write_bytes(b"space")
        asset = PathResolver(str(public_dir)).resolve("/a%20b.txt")

        assert asset.path.endswith("a b.txt")
        assert asset.size == 5

    def test_utf8_name(self, public_dir):
        (public_dir / "café.txt").write_bytes(b"x")
        asset = PathResolver(str(public_dir)).resolve("/caf%C3%A9.txt")
        assert asset.path.endswith("café.txt")

    def test_compound_extension(self, public_dir):
        asset = PathResolver(str(public_dir)).resolve("/archive.tar.gz")
        assert asset.extension == ".tar.gz"

    def test_dot_segments_inside_root(self, public_dir):
        asset = PathResolver(str(public_dir)).resolve("/docs/../hello.txt")
        assert asset.path == os.path.join(str(public_dir), "hello.txt")

    def test_module_level_resolve(self, public_dir):
        assert resolve(str(public_dir), "/hello.txt").extension == ".txt"


class TestResolveDirectories:
    """Directory requests and index files."""

    def test_root_serves_index_html(self, public_dir):
        asset = PathResolver(str(public_dir)).resolve("/")
        assert asset.path == os.path.join(str(public_dir), "index.html")

    def test_index_htm_fallback(self, public_dir):
        asset = PathResolver(str(public_dir)).resolve("/docs/")
        assert asset.path.endswith(os.path.join("docs", "index.htm"))

    def test_directory_without_trailing_slash(self, public_dir):
        asset = PathResolver(str(public_dir)).resolve("/docs")
        assert asset.extension == ".htm"

    def test_index_html_preferred(self, public_dir):
        (public_dir / "docs" / "index.html").write_bytes(b"<p>html</p>")
        asset = PathResolver(str(public_dir)).resolve("/docs/")
        assert asset.path.endswith("index.html")

    def test_no_index_is_forbidden(self, public_dir):
        with pytest.raises(Forbidden) as exc_info:
            PathResolver(str(public_dir)).resolve("/empty/")
        assert exc_info.value.message == "Directory listing not allowed"

    def test_custom_index_files(self, public_dir):
        resolver = PathResolver(str(public_dir), index_files=("hello.txt",))
        assert resolver.resolve("/").path.endswith("hello.txt")


class TestResolveRejections:
    """Traversal, hidden files, malformed paths, missing files."""

    @pytest.mark.parametrize("raw_path", [
        "/../etc/passwd",
        "/..%2f..%2fetc%2fpasswd",
        "/%2e%2e/%2e%2e/etc/passwd",
        "/docs/../../outside.txt",
    ])
    def test_traversal_forbidden(self, public_dir, raw_path):
        with pytest.raises(Forbidden) as exc_info:
            PathResolver(str(public_dir)).resolve(raw_path)
        assert exc_info.value.status == 403
        assert exc_info.value.message == "Access denied"

    def test_sibling_with_shared_prefix_forbidden(self, public_dir):
        with pytest.raises(Forbidden):
            PathResolver(str(public_dir)).resolve("/../public-private/leak.txt")

    def test_hidden_file_forbidden(self, public_dir):
        with pytest.raises(Forbidden):
            PathResolver(str(public_dir)).resolve("/.secret")

    def test_hidden_file_in_subdirectory_forbidden(self, public_dir):
        with pytest.raises(Forbidden):
            PathResolver(str(public_dir)).resolve("/assets/.env")

    def test_hidden_check_uses_final_segment_only(self, public_dir):
        (public_dir / ".well-known").mkdir()
        (public_dir / ".well-known" / "security.txt").write_bytes(b"Contact: x\n")
        asset = PathResolver(str(public_dir)).resolve("/.well-known/security.txt")
        assert asset.path.endswith("security.txt")

    def test_nul_byte_is_bad_request(self, public_dir):
        with pytest.raises(BadRequest) as exc_info:
            PathResolver(str(public_dir)).resolve("/hello.txt%00.html")
        assert exc_info.value.status == 400

    def test_invalid_utf8_is_bad_request(self, public_dir):
        with pytest.raises(BadRequest):
            PathResolver(str(public_dir)).resolve("/%ff%fe.txt")

    def test_missing_file_not_found(self, public_dir):
        with pytest.raises(NotFound) as exc_info:
            PathResolver(str(public_dir)).resolve("/nope.txt")
        assert exc_info.value.message == "File not found"

    def test_file_used_as_directory_not_found(self, public_dir):
        with pytest.raises(NotFound):
            PathResolver(str(public_dir)).resolve("/hello.txt/child")

    def test_trailing_slash_on_file_not_found(self, public_dir):
        with pytest.raises(NotFound):
            PathResolver(str(public_dir)).resolve("/hello.txt/")

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs FIFOs")
    def test_non_regular_file_not_found(self, public_dir):
        os.mkfifo(public_dir / "pipe")
        with pytest.raises(NotFound):
            PathResolver(str(public_dir)).resolve("/pipe")


class TestRootNormalization:
    """The root itself is normalized once."""

    def test_relative_root_made_absolute(self, public_dir, monkeypatch):
        monkeypatch.chdir(public_dir.parent)
        resolver = PathResolver("public")
        assert resolver.root == str(public_dir)
        assert resolver.is_within_root(os.path.join(str(public_dir), "x"))
        assert not resolver.is_within_root(str(public_dir) + "-private")
