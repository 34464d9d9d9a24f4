"""
=============================================================================
REQUEST READER
=============================================================================

Fills a bounded buffer from a stream until a complete request header block
is available, and reports what happened as a ReaderOutcome.

=============================================================================
WHEN DO WE STOP READING?
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   while True:                                                        │
    │       chunk = stream.read(B - len(buffer))                           │
    │                                                                      │
    │       chunk == b"" or socket error ──────────►  PEER_CLOSED          │
    │       deadline expired, nothing read ────────►  PEER_CLOSED          │
    │       deadline expired, partial request ─────►  INCOMPLETE           │
    │                                                                      │
    │       buffer += chunk                                                │
    │                                                                      │
    │       b"\\r\\n\\r\\n" in buffer ──────────────────►  COMPLETE(buffer)      │
    │       len(buffer) == B ──────────────────────►  INCOMPLETE           │
    │       N reads done ──────────────────────────►  INCOMPLETE           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The buffer can never grow past B: each read asks for at most the room that
is left. A client that trickles one byte at a time is cut off by the read
budget N; a client that goes silent is cut off by the read deadline.

=============================================================================
WHAT THE PROCESSOR DOES WITH IT
=============================================================================

    COMPLETE     → parse and answer
    INCOMPLETE   → 400 Bad Request ("Incomplete HTTP request.")
    PEER_CLOSED  → close silently; the stream is already gone

The reader only ever reads. It never writes to the stream.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum

from ..http.request import HEADER_TERMINATOR


logger = logging.getLogger(__name__)


DEFAULT_MAX_SIZE = 8192
DEFAULT_MAX_ATTEMPTS = 16


class ReaderStatus(Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    PEER_CLOSED = "peer_closed"


@dataclass(frozen=True)
class ReaderOutcome:
    """
    Result of reading one request.

    ``data`` is only meaningful for COMPLETE: the buffered bytes up to and
    including the terminator, plus anything that arrived in the same reads.
    """

    status: ReaderStatus
    data: bytes = b""

    @classmethod
    def complete(cls, data: bytes) -> "ReaderOutcome":
        return cls(ReaderStatus.COMPLETE, bytes(data))

    @classmethod
    def incomplete(cls, data: bytes = b"") -> "ReaderOutcome":
        return cls(ReaderStatus.INCOMPLETE, bytes(data))

    @classmethod
    def peer_closed(cls) -> "ReaderOutcome":
        return cls(ReaderStatus.PEER_CLOSED)

    @property
    def is_complete(self) -> bool:
        return self.status is ReaderStatus.COMPLETE


class RequestReader:
    """
    Reads one request header block from a stream.

    Args:
        max_size: Buffer capacity B in bytes.
        max_attempts: Read budget N.

    Usage:
        reader = RequestReader(max_size=8192, max_attempts=16)
        outcome = reader.read(conn)
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_size < len(HEADER_TERMINATOR):
            raise ValueError(f"max_size must be >= {len(HEADER_TERMINATOR)}")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        self.max_size = max_size
        self.max_attempts = max_attempts

    def read(self, stream) -> ReaderOutcome:
        """
        Read from ``stream`` until a request is complete or a limit is hit.

        Args:
            stream: Anything with ``read(max_bytes) -> bytes``.

        Returns:
            The ReaderOutcome. Never raises for transport problems.
        """
        buffer = bytearray()

        for _ in range(self.max_attempts):
            try:
                chunk = stream.read(self.max_size - len(buffer))
            except TimeoutError:
                # Deadline with nothing at all is an idle connection, not a request
                if not buffer:
                    logger.debug("Read deadline expired before any data")
                    return ReaderOutcome.peer_closed()
                logger.debug(f"Read deadline expired after {len(buffer)} bytes")
                return ReaderOutcome.incomplete(buffer)
            except OSError as e:
                logger.debug(f"Read failed: {e}")
                return ReaderOutcome.peer_closed()

            if not chunk:
                return ReaderOutcome.peer_closed()

            buffer += chunk

            if HEADER_TERMINATOR in buffer:
                return ReaderOutcome.complete(buffer)

            if len(buffer) >= self.max_size:
                logger.debug(f"Buffer full ({len(buffer)} bytes) without terminator")
                return ReaderOutcome.incomplete(buffer)

        logger.debug(f"Read budget of {self.max_attempts} attempts exhausted")
        return ReaderOutcome.incomplete(buffer)
