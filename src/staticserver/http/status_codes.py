"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can put on the wire, with their reason phrases.

A static file server with one request per connection has a small vocabulary:

    ┌────────┬──────────────────────────────┬──────────────────────────────┐
    │  Code  │  Phrase                      │  When                        │
    ├────────┼──────────────────────────────┼──────────────────────────────┤
    │  200   │  OK                          │  File found and served       │
    │  400   │  Bad Request                 │  Incomplete / malformed /    │
    │        │                              │  missing Host                │
    │  403   │  Forbidden                   │  Path rejected by sanitizer  │
    │  404   │  Not Found                   │  File cannot be opened       │
    │  405   │  Method Not Allowed          │  Anything but GET / HEAD     │
    │  500   │  Internal Server Error       │  Body could not be prepared  │
    │  503   │  Service Unavailable         │  Worker pool queue is full   │
    │  505   │  HTTP Version Not Supported  │  Not HTTP/1.0 or HTTP/1.1    │
    └────────┴──────────────────────────────┴──────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes produced by the server.

    IntEnum so that a status compares equal to its integer code:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> f"{HTTPStatus.NOT_FOUND.value} {HTTPStatus.NOT_FOUND.phrase}"
        '404 Not Found'
    """

    OK = 200

    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405

    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line (``HTTP/1.1 404 Not Found``)."""
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        """True for 2xx codes."""
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        """True for 4xx codes."""
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        """True for 5xx codes."""
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        """True for any 4xx or 5xx code."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
