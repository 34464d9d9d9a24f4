"""
=============================================================================
REQUEST ERROR TAXONOMY
=============================================================================

Every failure while handling a request is terminal: it maps to exactly one
response (or none, for transport failures) and then the connection closes.
Each failure is an exception that carries the status it should produce, so
the processor has a single place that turns errors into responses:

    ┌──────────────────────┬────────┬──────────────────────────────────────┐
    │  Exception           │ Status │  Raised when                         │
    ├──────────────────────┼────────┼──────────────────────────────────────┤
    │  TransportError      │   -    │  Peer closed / socket error / no     │
    │                      │        │  request ever arrived                │
    │  ProtocolError       │  400   │  No terminator, malformed request    │
    │                      │        │  line, missing Host on HTTP/1.1      │
    │  MethodError         │  405   │  Method other than GET / HEAD        │
    │  VersionError        │  505   │  Version other than HTTP/1.0 / 1.1   │
    │  PathError           │  403   │  Target fails the traversal guard    │
    │  ResourceError       │  404   │  File cannot be opened               │
    │  ResourceLimitError  │  500   │  Body could not be held in memory    │
    └──────────────────────┴────────┴──────────────────────────────────────┘

Errors are local to one connection. Nothing here touches process-wide state.

=============================================================================
"""

from typing import Dict, Optional

from .status_codes import HTTPStatus


class HTTPError(Exception):
    """
    Base class for request failures that produce an HTTP response.

    Carries the status code and the short plain-text explanation that goes
    into the response body. Subclasses fix the status; callers only supply
    the message when the default does not fit.

    Attributes:
        status: HTTP status to return.
        message: Plain-text body (without trailing CRLF).
        headers: Extra response headers this error requires (e.g. ``Allow``).
    """

    status: HTTPStatus = HTTPStatus.BAD_REQUEST
    default_message: str = "Bad request."

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers: Dict[str, str] = dict(headers or {})
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return int(self.status)


class TransportError(Exception):
    """
    The stream went away (peer closed, reset, or read deadline with nothing
    received). No response is attempted on a transport failure.
    """


class ProtocolError(HTTPError):
    status = HTTPStatus.BAD_REQUEST
    default_message = "Malformed request line."


class MethodError(HTTPError):
    status = HTTPStatus.METHOD_NOT_ALLOWED
    default_message = "Supported methods: GET, HEAD."

    def __init__(self, message: Optional[str] = None):
        # RFC 7231 requires a 405 to list the allowed methods
        super().__init__(message, headers={"Allow": "GET, HEAD"})


class VersionError(HTTPError):
    status = HTTPStatus.HTTP_VERSION_NOT_SUPPORTED
    default_message = "HTTP version not supported."


class PathError(HTTPError):
    status = HTTPStatus.FORBIDDEN
    default_message = "Invalid path."


class ResourceError(HTTPError):
    status = HTTPStatus.NOT_FOUND
    default_message = "The requested file was not found."


class ResourceLimitError(HTTPError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Memory allocation failed."
