"""
=============================================================================
RESPONSE HEADERS
=============================================================================

HTTP header names are case-insensitive (RFC 7230 §3.2), but the pipeline
sets them from many places: the handler, the CORS middleware, the access
log middleware, and the transport. A plain dict would let
"Content-Length" and "content-length" coexist and both reach the wire.

Headers is an ordered mapping that:

    1. Compares names case-insensitively
    2. Keeps the spelling of the LAST write
    3. Keeps first-insertion order for serialization

    >>> h = Headers()
    >>> h["content-type"] = "text/plain"
    >>> h["Content-Type"] = "text/html"      # same header, last write wins
    >>> list(h.items())
    [('Content-Type', 'text/html')]

=============================================================================
"""

from typing import Dict, Iterator, Mapping, MutableMapping, Optional, Tuple


class Headers(MutableMapping):
    """Ordered, case-insensitive header mapping."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None, **kwargs: str):
        # lowercased name -> (display name, value)
        self._store: Dict[str, Tuple[str, str]] = {}
        if initial:
            self.update(initial)
        if kwargs:
            self.update(kwargs)

    def __setitem__(self, name: str, value: str) -> None:
        self._store[name.lower()] = (name, str(value))

    def __getitem__(self, name: str) -> str:
        return self._store[name.lower()][1]

    def __delitem__(self, name: str) -> None:
        del self._store[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return (display for display, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._store

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            other = Headers(other)
            return {k: v for k, (_, v) in self._store.items()} == {
                k: v for k, (_, v) in other._store.items()
            }
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def copy(self) -> "Headers":
        return Headers(dict(self.items()))

    def to_lines(self) -> list:
        """Render as "Name: value" lines, in insertion order."""
        return [f"{name}: {value}" for name, value in self._store.values()]
