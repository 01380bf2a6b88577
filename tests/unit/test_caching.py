"""
Unit tests for ETag computation and conditional requests.
"""

import hashlib
import pytest

from staticserver.handlers.resolver import PathResolver
from staticserver.http.caching import ConditionalCache, content_etag, weak_etag
from staticserver.http.status_codes import HTTPStatus


@pytest.fixture
def asset(public_dir):
    return PathResolver(str(public_dir)).resolve("/hello.txt")


class TestValidators:
    """ETag values."""

    def test_strong_etag_is_md5_hex(self, asset):
        expected = hashlib.md5(b"Hello, static world!\n").hexdigest()
        assert content_etag(asset.path) == expected

    def test_strong_etag_independent_of_chunk_size(self, public_dir):
        big = public_dir / "big.bin"
        big.write_bytes(bytes(range(256)) * 1000)
        assert content_etag(str(big), chunk_size=1024) == content_etag(str(big), chunk_size=65536)

    def test_weak_etag_format(self):
        assert weak_etag(21, 1700000000123456789) == 'W/"21-1700000000123456789"'

    def test_validator_for_weak_mode(self, asset):
        cache = ConditionalCache(etag_mode="weak")
        assert cache.validator_for(asset) == f'W/"{asset.size}-{asset.mtime_ns}"'

    def test_etag_changes_with_content(self, public_dir):
        resolver = PathResolver(str(public_dir))
        cache = ConditionalCache()
        before = cache.validator_for(resolver.resolve("/hello.txt"))
        (public_dir / "hello.txt").write_bytes(b"changed\n")
        after = cache.validator_for(resolver.resolve("/hello.txt"))
        assert before != after

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            ConditionalCache(etag_mode="fuzzy")


class TestEvaluate:
    """Freshness decisions."""

    def test_headers_without_condition(self, asset):
        decision = ConditionalCache().evaluate(asset, None)

        assert not decision.not_modified
        assert decision.etag == content_etag(asset.path)
        assert decision.headers["Cache-Control"] == "public, max-age=3600"

    def test_matching_if_none_match(self, asset):
        cache = ConditionalCache()
        tag = cache.validator_for(asset)

        decision = cache.evaluate(asset, tag)

        assert decision.not_modified
        response = decision.not_modified_response()
        assert response.status == HTTPStatus.NOT_MODIFIED
        assert response.headers["ETag"] == tag
        assert response.headers["Cache-Control"] == "public, max-age=3600"
        assert "Content-Type" not in response.headers
        assert response.body == b""

    def test_quoted_tag_does_not_match_unquoted(self, asset):
        cache = ConditionalCache()
        tag = cache.validator_for(asset)
        assert not cache.evaluate(asset, f'"{tag}"').not_modified

    def test_list_does_not_match(self, asset):
        cache = ConditionalCache()
        tag = cache.validator_for(asset)
        assert not cache.evaluate(asset, f"abc, {tag}").not_modified

    def test_stale_tag(self, asset):
        assert not ConditionalCache().evaluate(asset, "0" * 32).not_modified

    def test_etag_disabled_never_304(self, asset, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "staticserver.http.caching.content_etag",
            lambda *a, **k: calls.append(a) or "x",
        )
        cache = ConditionalCache(etag=False)

        decision = cache.evaluate(asset, "x")

        assert not decision.not_modified
        assert "ETag" not in decision.headers
        assert calls == []  # no hashing at all

    def test_cache_control_disabled(self, asset):
        decision = ConditionalCache(cache_control=False).evaluate(asset, None)
        assert "Cache-Control" not in decision.headers
        assert "ETag" in decision.headers

    def test_custom_max_age(self, asset):
        decision = ConditionalCache(max_age=60).evaluate(asset, None)
        assert decision.headers["Cache-Control"] == "public, max-age=60"

    def test_missing_file_raises_oserror(self, asset, public_dir):
        (public_dir / "hello.txt").unlink()
        with pytest.raises(FileNotFoundError):
            ConditionalCache().evaluate(asset, None)
