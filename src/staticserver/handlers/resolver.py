"""
=============================================================================
PATH RESOLUTION
=============================================================================

Turns a request path into a file on disk that is SAFE to serve, or raises
the error that explains why not.

=============================================================================
THE PIPELINE
=============================================================================

    raw path "/docs/..%2F..%2Fetc/passwd"
        │
        ├─ 1. percent-decode (UTF-8, strict)    "/docs/../../etc/passwd"
        │      NUL byte or bad UTF-8 ─────────────────────────► BadRequest
        │
        ├─ 2. join onto root, normalize          "/etc/passwd"
        │      (lexical only, no filesystem access)
        │
        ├─ 3. root boundary check
        │      not root, not under root + "/" ────────────────► Forbidden
        │
        ├─ 4. hidden-file check on the final segment
        │      ".env", ".htpasswd" ───────────────────────────► Forbidden
        │
        ├─ 5. one stat() of the target
        │      missing ────────────────────────────────────────► NotFound
        │      directory → index.html, else index.htm
        │                  neither ───────────────────────────► Forbidden
        │      trailing "/" on a non-directory ───────────────► NotFound
        │
        └─ 6. must be a regular file (sockets, FIFOs, devices) ► NotFound

=============================================================================
WHY A SEPARATOR-AWARE PREFIX CHECK?
=============================================================================

    root      = /srv/public
    candidate = /srv/public-secret/key.pem

    candidate.startswith(root)          → True   ✗ WRONG
    candidate.startswith(root + "/")    → False  ✓

A plain string prefix test lets a sibling directory whose name merely
starts with the root's name slip through.

=============================================================================
SYMLINKS
=============================================================================

Normalization is LEXICAL. A symlink inside the root that points outside
it is followed by stat() and open(). Deployments that must not follow
links out of the root should not place such links there.

=============================================================================
INTERVIEW QUESTIONS ABOUT PATH TRAVERSAL
=============================================================================

Q: "Why decode before normalizing, not after?"
A: "%2e%2e%2f is '../'. Normalizing the encoded form sees no '..' at
   all; decoding afterwards would then produce a traversal the check
   never saw."

Q: "Why one stat() instead of exists() then isdir() then isfile()?"
A: "Each call is a separate syscall and a separate chance for the file
   to change in between. One stat gives a consistent snapshot."

=============================================================================
"""

import logging
import os
import stat
from dataclasses import dataclass
from typing import Sequence
from urllib.parse import unquote

from ..errors import BadRequest, Forbidden, NotFound
from ..http.mime_types import extension_of


logger = logging.getLogger(__name__)

DEFAULT_INDEX_FILES = ("index.html", "index.htm")


@dataclass(frozen=True)
class ResolvedAsset:
    """
    A regular file inside the root, ready to be served.

    Attributes:
        path: Absolute filesystem path.
        size: Size in bytes.
        mtime_ns: Last modification time, nanoseconds since the epoch.
        extension: Lowercase extension, compound-aware (".tar.gz").
    """
    path: str
    size: int
    mtime_ns: int
    extension: str

    @property
    def mtime(self) -> float:
        return self.mtime_ns / 1e9


class PathResolver:
    """Maps request paths to ResolvedAssets under a fixed root."""

    def __init__(self, root: str, index_files: Sequence[str] = DEFAULT_INDEX_FILES):
        self.root = os.path.normpath(os.path.abspath(root))
        self.index_files = tuple(index_files)
        # "/" stays "/", "/srv/public" becomes "/srv/public/"
        self._root_prefix = self.root if self.root.endswith(os.sep) else self.root + os.sep

    def resolve(self, raw_path: str) -> ResolvedAsset:
        """
        Resolve a still-percent-encoded request path.

        Raises:
            BadRequest: Undecodable path or embedded NUL.
            Forbidden: Outside the root, hidden, or directory without index.
            NotFound: Missing, or not a regular file.
        """
        decoded = self._decode(raw_path)

        # ─────────────────────────────────────────────────────────────────
        # JOIN AND NORMALIZE (lexical)
        # ─────────────────────────────────────────────────────────────────
        # lstrip makes the join relative: os.path.join(root, "/etc") is "/etc"
        target = os.path.normpath(os.path.join(self.root, decoded.lstrip("/")))

        if not self.is_within_root(target):
            logger.warning(f"Path traversal attempt: {raw_path!r}")
            raise Forbidden()

        if target != self.root and os.path.basename(target).startswith("."):
            logger.warning(f"Hidden file request: {raw_path!r}")
            raise Forbidden()

        # ─────────────────────────────────────────────────────────────────
        # SINGLE STAT, THEN BRANCH
        # ─────────────────────────────────────────────────────────────────
        st = self._stat(target)
        if st is None:
            raise NotFound()

        if stat.S_ISDIR(st.st_mode):
            target, st = self._find_index(target)
        elif decoded.endswith("/"):
            # "/file.txt/" names a directory that is not there (ENOTDIR)
            raise NotFound()

        if not stat.S_ISREG(st.st_mode):
            raise NotFound()

        return ResolvedAsset(
            path=target,
            size=st.st_size,
            mtime_ns=st.st_mtime_ns,
            extension=extension_of(target),
        )

    def is_within_root(self, path: str) -> bool:
        return path == self.root or path.startswith(self._root_prefix)

    @staticmethod
    def _decode(raw_path: str) -> str:
        try:
            decoded = unquote(raw_path, encoding="utf-8", errors="strict")
        except UnicodeDecodeError:
            raise BadRequest() from None

        if "\x00" in decoded:
            raise BadRequest()
        return decoded

    @staticmethod
    def _stat(path: str):
        """stat() or None when missing. PermissionError means Forbidden."""
        try:
            return os.stat(path)
        except PermissionError:
            raise Forbidden() from None
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            # ENAMETOOLONG, ELOOP and friends: nothing servable here
            logger.debug(f"stat({path!r}) failed: {e}")
            return None

    def _find_index(self, directory: str):
        for name in self.index_files:
            candidate = os.path.join(directory, name)
            st = self._stat(candidate)
            if st is not None:
                return candidate, st
        raise Forbidden("Directory listing not allowed")


def resolve(root: str, raw_path: str) -> ResolvedAsset:
    """One-shot form of PathResolver(root).resolve(raw_path)."""
    return PathResolver(root).resolve(raw_path)
