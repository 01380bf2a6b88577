"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the Content-Type sent with a static file.

The table is static and module-level: it is read by every worker thread
and written by none, so it needs no locking.

=============================================================================
COMPOUND EXTENSIONS
=============================================================================

Most files have one meaningful suffix. Archives do not:

    backup.tar.gz      Path.suffix → ".gz"      extension_of → ".tar.gz"
    backup.tar.bz2     Path.suffix → ".bz2"     extension_of → ".tar.bz2"
    photo.JPG          Path.suffix → ".JPG"     extension_of → ".jpg"

extension_of() recognizes the compound forms first and lowercases the
result, so both the MIME lookup and the "already compressed?" check in
the content encoder see the same extension.

=============================================================================
INTERVIEW QUESTIONS ABOUT MIME TYPES
=============================================================================

Q: "What happens when you don't know the type?"
A: "Send application/octet-stream. Browsers treat it as an opaque
   download instead of guessing, which is the safe default."

Q: "Why no charset on text types here?"
A: "The server does not know the file's encoding. Sending a charset
   it never verified would be a lie, so the bare type goes out and
   the browser sniffs or uses the document's own declaration."

=============================================================================
"""

from pathlib import Path
from typing import Optional


# Extension → MIME type. Keys are lowercase and include the leading dot.
MIME_TYPES = {
    # Text and documents
    ".htm": "text/html",
    ".html": "text/html",
    ".css": "text/css",
    ".csv": "text/csv",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".xml": "application/xml",
    ".json": "application/json",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".map": "application/json",
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".wasm": "application/wasm",

    # Images
    ".gif": "image/gif",
    ".ico": "image/x-icon",
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".eot": "application/vnd.ms-fontobject",
    ".otf": "application/font-otf",
    ".ttf": "application/font-ttf",
    ".woff": "application/font-woff",
    ".woff2": "font/woff2",

    # Audio and video
    ".avi": "video/x-msvideo",
    ".flv": "video/x-flv",
    ".mkv": "video/x-matroska",
    ".mov": "video/quicktime",
    ".mp3": "audio/mpeg",
    ".mp4": "video/mp4",
    ".ogg": "audio/ogg",
    ".wav": "audio/wav",
    ".webm": "video/webm",
    ".wmv": "video/x-ms-wmv",

    # Archives (served as-is, never recompressed)
    ".br": "application/brotli",
    ".bz2": "application/x-bzip2",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".tar.bz2": "application/x-bzip2",
    ".tar.gz": "application/gzip",
    ".tgz": "application/gzip",
    ".zip": "application/zip",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# Multi-part suffixes that must win over their last component.
COMPOUND_EXTENSIONS = (".tar.gz", ".tar.bz2")


def extension_of(path: str | Path) -> str:
    """
    Return the lowercase extension of `path`, including the dot.

    Examples:
        >>> extension_of("/srv/public/site.tar.gz")
        '.tar.gz'
        >>> extension_of("LOGO.PNG")
        '.png'
        >>> extension_of("Makefile")
        ''
    """
    name = Path(path).name.lower()
    for compound in COMPOUND_EXTENSIONS:
        if name.endswith(compound) and len(name) > len(compound):
            return compound
    return Path(name).suffix


def get_mime_type(extension: str, default: Optional[str] = None) -> str:
    """
    Look up the MIME type for an extension as returned by extension_of().

        >>> get_mime_type(".css")
        'text/css'
        >>> get_mime_type(".xyz")
        'application/octet-stream'
    """
    return MIME_TYPES.get(extension.lower(), default or DEFAULT_MIME_TYPE)
