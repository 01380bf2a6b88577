"""
Unit tests for content-encoding negotiation and streaming compression.
"""

import gzip

import brotli
import pytest

from staticserver.http.encoding import (
    ContentEncoder,
    EncodingChoice,
    PRECOMPRESSED_EXTENSIONS,
    parse_accept_encoding,
)
from staticserver.http.streams import FileStream


class TestParseAcceptEncoding:
    """Accept-Encoding token parsing."""

    def test_simple_list(self):
        assert parse_accept_encoding("gzip, deflate, br") == {"gzip", "deflate", "br"}

    def test_empty_and_missing(self):
        assert parse_accept_encoding("") == set()
        assert parse_accept_encoding(None) == set()

    def test_q_zero_excludes(self):
        assert parse_accept_encoding("br;q=0, gzip") == {"gzip"}

    def test_q_nonzero_kept(self):
        assert parse_accept_encoding("br;q=0.5, gzip;q=1.0") == {"br", "gzip"}

    def test_unparseable_q_excludes(self):
        assert parse_accept_encoding("br;q=high") == set()

    def test_case_insensitive(self):
        assert parse_accept_encoding("GZip, BR") == {"gzip", "br"}

    def test_substring_does_not_count(self):
        # "xbr" must not be read as "br"
        assert "br" not in parse_accept_encoding("xbr, gzipx")


class TestChoose:
    """Which coding a response gets."""

    def test_brotli_preferred(self):
        assert ContentEncoder().choose("gzip, br", ".js") is EncodingChoice.BROTLI

    def test_gzip_when_brotli_not_accepted(self):
        assert ContentEncoder().choose("gzip", ".js") is EncodingChoice.GZIP

    def test_gzip_when_brotli_disabled(self):
        encoder = ContentEncoder(brotli_enabled=False)
        assert encoder.choose("gzip, br", ".css") is EncodingChoice.GZIP

    def test_identity_when_both_disabled(self):
        encoder = ContentEncoder(brotli_enabled=False, gzip_enabled=False)
        assert encoder.choose("gzip, br", ".css") is EncodingChoice.NONE

    def test_identity_without_header(self):
        assert ContentEncoder().choose("", ".html") is EncodingChoice.NONE

    def test_identity_when_only_unknown_codings(self):
        assert ContentEncoder().choose("deflate, identity", ".html") is EncodingChoice.NONE

    @pytest.mark.parametrize("extension", sorted(PRECOMPRESSED_EXTENSIONS))
    def test_precompressed_never_reencoded(self, extension):
        assert ContentEncoder().choose("br, gzip", extension) is EncodingChoice.NONE

    def test_choice_values_are_header_tokens(self):
        assert EncodingChoice.BROTLI.value == "br"
        assert EncodingChoice.GZIP.value == "gzip"


class TestEncodedStream:
    """Streaming compression over a FileStream."""

    def test_brotli_round_trip(self, public_dir):
        path = public_dir / "app.js"
        stream = ContentEncoder().encode(EncodingChoice.BROTLI, FileStream(str(path), chunk_size=1024))

        compressed = b"".join(stream)

        assert brotli.decompress(compressed) == path.read_bytes()
        assert len(compressed) < path.stat().st_size
        assert stream.closed

    def test_gzip_round_trip(self, public_dir):
        path = public_dir / "app.js"
        stream = ContentEncoder().encode(EncodingChoice.GZIP, FileStream(str(path), chunk_size=1024))

        compressed = b"".join(stream)

        assert compressed[:2] == b"\x1f\x8b"
        assert gzip.decompress(compressed) == path.read_bytes()

    def test_empty_file_still_produces_valid_stream(self, public_dir):
        empty = public_dir / "empty.css"
        empty.write_bytes(b"")
        stream = ContentEncoder().encode(EncodingChoice.GZIP, FileStream(str(empty)))
        assert gzip.decompress(b"".join(stream)) == b""

    def test_close_before_iteration(self, public_dir):
        source = FileStream(str(public_dir / "app.js"))
        stream = ContentEncoder().encode(EncodingChoice.BROTLI, source)

        stream.close()

        assert stream.closed
        assert list(stream) == []

    def test_close_mid_stream_releases_file(self, public_dir):
        source = FileStream(str(public_dir / "app.js"), chunk_size=1024)
        stream = ContentEncoder().encode(EncodingChoice.GZIP, source)
        next(stream)

        stream.close()

        assert source.closed

    def test_identity_not_wrapped(self, public_dir):
        with pytest.raises(ValueError):
            ContentEncoder().encode(EncodingChoice.NONE, FileStream(str(public_dir / "app.js")))
