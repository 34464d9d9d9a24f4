"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a validated request target into an open file, its size and its MIME
type.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /../../etc/passwd HTTP/1.1                                      │
    │                                                                      │
    │  Without a check this opens ./../../etc/passwd                       │
    │  → /etc/passwd                                                       │
    └─────────────────────────────────────────────────────────────────────┘

The rule here is blunt and applied to the raw, untruncated target, before
anything touches the filesystem:

    target contains ".."                 → 403
    target contains more than 2 "/"      → 403

So at most one directory level below the document root is reachable, and
there is no normalization step to get wrong. Symlinks inside the document
root are followed; putting one there is the operator's decision.

=============================================================================
RESOLUTION
=============================================================================

    "/"             → index.html
    "/style.css"    → style.css
    "/docs/a.txt"   → docs/a.txt
    "//etc"         → 403 (would still be absolute after stripping "/")

Exactly one leading "/" is stripped. Names are opened relative to the
document root, which defaults to the process working directory.

=============================================================================
"""

import os
import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional

from ..http.errors import PathError, ResourceError, ResourceLimitError
from ..http.mime_types import get_mime_type


logger = logging.getLogger(__name__)


MAX_PATH_DEPTH = 2
DEFAULT_RESOURCE = "index.html"


@dataclass
class ResolvedResource:
    """
    An opened file ready to be served.

    Use as a context manager; the file is closed on exit, whatever happened.

    Attributes:
        name: Path relative to the document root.
        file: Open binary file handle.
        length: Size in bytes, measured when opened.
        content_type: MIME type from the name's suffix.
    """

    name: str
    file: BinaryIO
    length: int
    content_type: str

    def read_body(self) -> bytes:
        """
        Read the whole file into memory.

        Raises:
            ResourceLimitError: The body could not be allocated.
            ResourceError: The file became unreadable after opening.
        """
        try:
            return self.file.read(self.length)
        except MemoryError:
            logger.error(f"Out of memory reading {self.name} ({self.length} bytes)")
            raise ResourceLimitError()
        except OSError as e:
            logger.debug(f"Read of {self.name} failed: {e}")
            raise ResourceError()

    def close(self):
        if not self.file.closed:
            self.file.close()

    def __enter__(self) -> "ResolvedResource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class StaticFileHandler:
    """
    Sanitizes targets and opens the files they name.

    Usage:
        handler = StaticFileHandler()          # serve the working directory
        name = handler.resolve(request.target, request.full_target)
        with handler.open(name) as resource:
            body = resource.read_body()
    """

    def __init__(self, root_dir: Optional[str] = None):
        """
        Args:
            root_dir: Document root. None means the current working
                      directory at the time each file is opened.
        """
        self.root_dir = root_dir

    @staticmethod
    def sanitize(target: str) -> str:
        """
        Reject targets that could leave the document root.

        Raises:
            PathError: Too many "/" or any ".." in the target.
        """
        if target.count("/") > MAX_PATH_DEPTH or ".." in target:
            raise PathError()
        return target

    @staticmethod
    def resolve_name(target: str) -> str:
        """
        Map a sanitized target to a name relative to the document root.

        Raises:
            PathError: The name would still be absolute.
        """
        name = target[1:] if target.startswith("/") else target

        if not name:
            return DEFAULT_RESOURCE

        if os.path.isabs(name):
            raise PathError()

        return name

    def resolve(self, target: str, raw_target: Optional[str] = None) -> str:
        """
        sanitize() then resolve_name().

        Args:
            target: The (possibly truncated) target to map to a name.
            raw_target: The untruncated target. When given, it is what gets
                        sanitized; truncation must not hide a "..".
        """
        self.sanitize(raw_target if raw_target is not None else target)
        return self.resolve_name(self.sanitize(target))

    def open(self, name: str) -> ResolvedResource:
        """
        Open ``name`` for reading and measure it.

        Raises:
            ResourceError: Missing, unreadable, a directory, or an invalid
                           name (embedded NUL byte).
        """
        path = os.path.join(self.root_dir, name) if self.root_dir else name

        try:
            file = open(path, "rb")
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot open {name!r}: {e}")
            raise ResourceError()

        try:
            file.seek(0, os.SEEK_END)
            length = file.tell()
            file.seek(0)
        except OSError as e:
            file.close()
            logger.debug(f"Cannot measure {name!r}: {e}")
            raise ResourceError()

        return ResolvedResource(
            name=name,
            file=file,
            length=length,
            content_type=get_mime_type(name),
        )


def serve_static(root_dir: Optional[str] = None) -> StaticFileHandler:
    """Factory for a StaticFileHandler."""
    return StaticFileHandler(root_dir)
