"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps a file name to the Content-Type the response should carry.

=============================================================================
WHY AN ORDERED TABLE AND NOT A DICT?
=============================================================================

The lookup matches on the END of the file name, not on a parsed extension.
With suffix matching, order matters whenever one suffix is the tail of
another:

    ".htm"  is NOT a tail of ".html", but ".htm" IS a prefix of it, so a
    naive "contains" check on "page.html" would hit ".htm" first.

    ".jpg" / ".jpeg", ".js" / ".json" have the same shape of problem.

Checking the longest suffix first makes the table order-independent for
readers and removes the ambiguity:

    ┌───────────────┬────────────────────────────┐
    │  Suffix       │  Content-Type              │
    ├───────────────┼────────────────────────────┤
    │  .html .htm   │  text/html                 │
    │  .txt         │  text/plain                │
    │  .jpeg .jpg   │  image/jpeg                │
    │  .png         │  image/png                 │
    │  .css         │  text/css                  │
    │  .json        │  application/json          │
    │  .js          │  application/javascript    │
    │  .pdf         │  application/pdf           │
    │  (anything)   │  application/octet-stream  │
    └───────────────┴────────────────────────────┘

The table is a module-level tuple: built once, never mutated, safe to share
between worker threads.

=============================================================================
"""

from pathlib import PurePath
from typing import Tuple, Union


_MIME_TABLE: Tuple[Tuple[str, str], ...] = (
    (".html", "text/html"),
    (".htm", "text/html"),
    (".txt", "text/plain"),
    (".jpg", "image/jpeg"),
    (".jpeg", "image/jpeg"),
    (".png", "image/png"),
    (".css", "text/css"),
    (".js", "application/javascript"),
    (".json", "application/json"),
    (".pdf", "application/pdf"),
)

# Longest suffix first; stable sort keeps table order for equal lengths
MIME_TYPES: Tuple[Tuple[str, str], ...] = tuple(
    sorted(_MIME_TABLE, key=lambda entry: len(entry[0]), reverse=True)
)

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(name: Union[str, PurePath]) -> str:
    """
    Get the MIME type for a file name.

    Matching is case-insensitive on the file name's suffix.

    Args:
        name: File name or path.

    Returns:
        The MIME type string.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'

        >>> get_mime_type("docs/page.HTM")
        'text/html'

        >>> get_mime_type("data.json")
        'application/json'

        >>> get_mime_type("archive.tar.gz")
        'application/octet-stream'
    """
    filename = PurePath(name).name.lower()

    for suffix, mime_type in MIME_TYPES:
        if filename.endswith(suffix):
            return mime_type

    return DEFAULT_MIME_TYPE
