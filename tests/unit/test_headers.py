"""
Unit tests for the response header mapping and the MIME table.
"""

import pytest

from staticserver.http.headers import Headers
from staticserver.http.mime_types import DEFAULT_MIME_TYPE, extension_of, get_mime_type


class TestHeaders:

    def test_case_insensitive_lookup(self):
        h = Headers({"Content-Type": "text/css"})
        assert h["content-type"] == "text/css"
        assert "CONTENT-TYPE" in h

    def test_last_write_spelling_wins(self):
        h = Headers()
        h["content-length"] = "1"
        h["Content-Length"] = "2"

        assert list(h.items()) == [("Content-Length", "2")]

    def test_insertion_order_kept(self):
        h = Headers()
        h["B"] = "1"
        h["A"] = "2"
        h["b"] = "3"
        assert h.to_lines() == ["b: 3", "A: 2"]

    def test_values_stringified(self):
        h = Headers()
        h["Content-Length"] = 42
        assert h["Content-Length"] == "42"

    def test_delete_and_setdefault(self):
        h = Headers({"ETag": "x"})
        del h["etag"]
        assert "ETag" not in h
        assert h.setdefault("Vary", "Accept-Encoding") == "Accept-Encoding"

    def test_copy_is_independent(self):
        h = Headers({"A": "1"})
        c = h.copy()
        c["A"] = "2"
        assert h["A"] == "1"

    def test_equality_ignores_case(self):
        assert Headers({"ETag": "x"}) == {"etag": "x"}
        assert Headers({"ETag": "x"}) != {"etag": "y"}


class TestMimeTypes:

    @pytest.mark.parametrize("path, expected", [
        ("index.html", ".html"),
        ("Photo.JPG", ".jpg"),
        ("backup.tar.gz", ".tar.gz"),
        ("backup.TAR.BZ2", ".tar.bz2"),
        ("plain.gz", ".gz"),
        ("README", ""),
        ("/srv/www/app.min.js", ".js"),
    ])
    def test_extension_of(self, path, expected):
        assert extension_of(path) == expected

    @pytest.mark.parametrize("extension, expected", [
        (".html", "text/html"),
        (".css", "text/css"),
        (".js", "application/javascript"),
        (".svg", "image/svg+xml"),
        (".mp4", "video/mp4"),
        (".tar.gz", "application/gzip"),
        (".woff2", "font/woff2"),
    ])
    def test_known_types(self, extension, expected):
        assert get_mime_type(extension) == expected

    def test_unknown_type(self):
        assert get_mime_type(".nope") == DEFAULT_MIME_TYPE == "application/octet-stream"
        assert get_mime_type("") == DEFAULT_MIME_TYPE

    def test_no_charset(self):
        assert ";" not in get_mime_type(".html")
