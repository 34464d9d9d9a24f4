"""
=============================================================================
CONNECTION
=============================================================================

Wraps an accepted client socket into the small stream interface the request
pipeline works against:

    read(max_bytes)  -> bytes       b"" means the peer closed
    write(data)      -> int         bytes accepted by the kernel (may be short)
    write_all(data)  -> bool        loop over write() until done or failed
    close()                         release the socket, exactly once

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

    Client sends:
        send("GET / HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n")

    Server might receive:
        recv() → "GET / HT"
        recv() → "TP/1.1\\r\\nHost: x\\r\\n\\r\\n"

Reads are therefore small building blocks; deciding when a request is
complete is the RequestReader's job, not the connection's.

The same holds for writes: send() may accept only part of the buffer.
write_all() resumes from where the last send() stopped.

=============================================================================
ONE REQUEST, THEN CLOSE
=============================================================================

    NEW ──► READING ──► WRITING ──► CLOSING ──► CLOSED
     │         │                       ▲
     └─────────┴───────────────────────┘   (errors go straight to close)

There is no keep-alive state. Whatever happens, the connection ends up
CLOSED, and close() is safe to call again.

=============================================================================
"""

import socket
import time
import uuid
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple


logger = logging.getLogger(__name__)

# Upper bound on bytes discarded while draining a closing connection
_DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Connection lifecycle states, mostly for logs."""
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection, owned by exactly one worker for its whole life.

    Attributes:
        socket: The accepted client socket.
        address: Client address as returned by accept().
        id: Short identifier for log lines.
        read_timeout: Deadline for each read, in seconds (None = block).
        write_timeout: Deadline for each write, in seconds (None = block).
        bytes_sent: Total bytes written, for the access log.
    """

    socket: socket.socket
    address: Tuple = ("", 0)

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    read_timeout: Optional[float] = 5.0
    write_timeout: Optional[float] = 5.0

    bytes_sent: int = 0

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.read_timeout)

    @property
    def client_ip(self) -> str:
        return str(self.address[0]) if self.address else ""

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read(self, max_bytes: int) -> bytes:
        """
        Read up to ``max_bytes`` from the socket.

        Returns:
            The bytes read; b"" when the peer closed or reset the connection.

        Raises:
            TimeoutError: The read deadline expired.
            OSError: Any other socket failure.
        """
        self.state = ConnectionState.READING
        self.socket.settimeout(self.read_timeout)

        try:
            return self.socket.recv(max_bytes)
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def write(self, data: bytes, timeout: Optional[float] = None) -> int:
        """
        One send() call. May accept fewer bytes than offered.

        Args:
            data: Bytes to send.
            timeout: Deadline for this send; None uses write_timeout.

        Raises:
            OSError: On any socket failure (including the write deadline).
        """
        self.state = ConnectionState.WRITING
        self.socket.settimeout(self.write_timeout if timeout is None else timeout)

        sent = self.socket.send(data)
        self.bytes_sent += sent
        return sent

    def write_all(self, data: bytes, timeout: Optional[float] = None) -> bool:
        """
        Write every byte of ``data``, resuming after partial sends.

        Args:
            data: Bytes to send.
            timeout: Deadline for each send; None uses write_timeout.

        Returns:
            True if everything was sent, False if the peer went away.
        """
        view = memoryview(data)
        offset = 0

        try:
            while offset < len(view):
                sent = self.write(view[offset:], timeout)
                if sent == 0:
                    logger.debug(f"[{self.id}] Peer stopped accepting data")
                    return False
                offset += sent
            return True
        except OSError as e:
            # Peer is gone; nothing useful left to say to it
            logger.debug(f"[{self.id}] Send failed after {offset} bytes: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self, drain_timeout: float = 0.5):
        """
        Close the connection. Idempotent.

        1. shutdown(SHUT_WR) sends FIN so the client sees end-of-response.
        2. Drain what the client may still be sending, so the kernel does not
           answer unread data with a RST that could destroy our response.
        3. close() releases the descriptor.

        Args:
            drain_timeout: How long to wait for the client to finish sending.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(drain_timeout)
            drained = 0
            while drained < _DRAIN_LIMIT:
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Timeout or reset: we're closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed ({self.bytes_sent} bytes sent)")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
