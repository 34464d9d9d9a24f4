"""
=============================================================================
STATICSERVER - Minimal HTTP/1.x Static File Server
=============================================================================

Serves files from a directory to GET and HEAD clients over raw sockets.
One request per connection, then close.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. SOCKETS                                                        │
    │      - getaddrinfo-based bind (IPv4 and IPv6)                       │
    │      - Interruptible accept loop, graceful shutdown                 │
    │                                                                      │
    │   2. CONCURRENCY                                                    │
    │      - Bounded thread pool, bounded queue                           │
    │      - 503 when saturated, never an unbounded thread count          │
    │                                                                      │
    │   3. ONE REQUEST                                                    │
    │      - Bounded read of the header block                             │
    │      - Request line parse and validation                            │
    │      - Path sanitation, file resolution, MIME detection             │
    │      - Correctly framed response, then close                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m staticserver)
    ├── server.py            # StaticServer: listener → pool → processor
    ├── processor.py         # RequestProcessor: one request, start to close
    ├── access_log.py        # Access log records and formatting
    ├── config.py            # ServerConfig dataclass
    ├── core/
    │   ├── socket_server.py # Listening socket, accept loop
    │   ├── connection.py    # Client socket as a stream
    │   ├── reader.py        # Bounded request reader
    │   └── thread_pool.py   # Worker threads
    ├── http/
    │   ├── request.py       # Request line parsing and validation
    │   ├── response.py      # Response framing
    │   ├── errors.py        # Error taxonomy → status codes
    │   ├── status_codes.py  # The statuses this server sends
    │   └── mime_types.py    # Suffix → Content-Type
    └── handlers/
        └── static.py        # Path sanitation and file opening

=============================================================================
QUICK START
=============================================================================

    from staticserver import create_server

    server = create_server(port=8080, root_dir="./public")
    server.run()

=============================================================================
"""

__version__ = "1.0.0"
__author__ = "staticserver contributors"

from .server import StaticServer, create_server
from .config import ServerConfig
from .processor import RequestProcessor
from .core import RequestReader, ReaderOutcome, ReaderStatus
from .handlers import StaticFileHandler
from .http import HTTPStatus, HTTPError, HTTPResponse, ParsedRequest, RequestParser

__all__ = [
    # Server
    "StaticServer",
    "create_server",
    "ServerConfig",

    # Request pipeline
    "RequestProcessor",
    "RequestReader",
    "ReaderOutcome",
    "ReaderStatus",
    "RequestParser",
    "ParsedRequest",
    "StaticFileHandler",

    # HTTP
    "HTTPStatus",
    "HTTPError",
    "HTTPResponse",

    # Metadata
    "__version__",
]
