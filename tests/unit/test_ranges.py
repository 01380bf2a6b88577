"""
Unit tests for Range header negotiation.
"""

import pytest

from staticserver.errors import RangeNotSatisfiable
from staticserver.http.ranges import ByteRange, RangeNegotiator, unsatisfiable_headers


@pytest.fixture
def negotiator() -> RangeNegotiator:
    return RangeNegotiator()


class TestSatisfiableRanges:
    """Ranges that produce a 206."""

    def test_no_header_means_full_entity(self, negotiator):
        assert negotiator.negotiate(None, 100) is None

    def test_empty_header_means_full_entity(self, negotiator):
        assert negotiator.negotiate("", 100) is None

    def test_closed_range(self, negotiator):
        r = negotiator.negotiate("bytes=0-9", 100)
        assert (r.start, r.end, r.length) == (0, 9, 10)
        assert r.content_range == "bytes 0-9/100"

    def test_open_ended_range(self, negotiator):
        r = negotiator.negotiate("bytes=90-", 100)
        assert (r.start, r.end) == (90, 99)

    def test_bare_dash_is_whole_entity(self, negotiator):
        r = negotiator.negotiate("bytes=-", 100)
        assert (r.start, r.end, r.length) == (0, 99, 100)

    def test_single_byte(self, negotiator):
        r = negotiator.negotiate("bytes=99-99", 100)
        assert r.length == 1

    def test_first_byte(self, negotiator):
        r = negotiator.negotiate("bytes=0-0", 100)
        assert r.content_range == "bytes 0-0/100"
        assert r.length == 1

    def test_surrounding_whitespace_ignored(self, negotiator):
        assert negotiator.negotiate("  bytes=1-2 ", 10).length == 2

    def test_headers(self, negotiator):
        assert negotiator.negotiate("bytes=10-19", 50).headers() == {
            "Content-Range": "bytes 10-19/50",
            "Accept-Ranges": "bytes",
            "Content-Length": "10",
        }


class TestUnsatisfiableRanges:
    """Ranges that produce a 416."""

    @pytest.mark.parametrize("header", [
        "bytes=5-2",          # start after end
        "bytes=0-100",        # end at total
        "bytes=100-",         # start at total
        "bytes=-5",           # suffix form not supported
        "bytes=0-1,4-5",      # multiple ranges
        "items=0-5",          # unknown unit
        "bytes=a-b",
        "bytes 0-5",
    ])
    def test_rejected(self, negotiator, header):
        with pytest.raises(RangeNotSatisfiable) as exc_info:
            negotiator.negotiate(header, 100)
        assert exc_info.value.status == 416
        assert exc_info.value.total == 100

    def test_empty_file_has_no_satisfiable_range(self, negotiator):
        with pytest.raises(RangeNotSatisfiable):
            negotiator.negotiate("bytes=0-", 0)

    def test_unsatisfiable_headers(self):
        assert unsatisfiable_headers(1234) == {"Content-Range": "bytes */1234"}


class TestByteRange:
    """The ByteRange invariant."""

    def test_invalid_construction(self):
        with pytest.raises(ValueError):
            ByteRange(start=5, end=4, total=10)
        with pytest.raises(ValueError):
            ByteRange(start=0, end=10, total=10)
