"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the request pipeline.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Resolves, binds and listens (IPv4 or IPv6)                       │
    │  • Runs the accept() loop in the main thread                        │
    │  • Stops cleanly on SIGTERM / SIGINT                                │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ Hands off new connections
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                 │
    │  • Bounded set of workers, bounded queue                            │
    │  • Full queue means the connection is refused with 503              │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ Worker owns the connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                   CONNECTION + REQUEST READER                        │
    │  • Connection: read / write / write_all / close on one socket       │
    │  • RequestReader: buffers one header block within fixed limits      │
    └─────────────────────────────────────────────────────────────────────┘
"""

from .socket_server import SocketServer, BindError
from .connection import Connection, ConnectionState
from .reader import RequestReader, ReaderOutcome, ReaderStatus
from .thread_pool import ThreadPool, Task

__all__ = [
    "SocketServer",     # Listening socket and accept loop
    "BindError",        # Raised when the listener cannot be bound
    "Connection",       # Client socket wrapper - the stream the pipeline uses
    "ConnectionState",  # Enum for connection lifecycle states
    "RequestReader",    # Bounded read of one request header block
    "ReaderOutcome",    # COMPLETE / INCOMPLETE / PEER_CLOSED plus data
    "ReaderStatus",
    "ThreadPool",       # Worker threads with a bounded queue
    "Task",             # One queued call; handed back when discarded at shutdown
]
