"""
=============================================================================
HTTP RESPONSE
=============================================================================

Builds the bytes that go back on the wire.

=============================================================================
RESPONSE STRUCTURE
=============================================================================

Every response this server sends has the same shape:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                  ◄── status line             │
    │    Content-Length: 10\r\n               ◄── always present          │
    │    Content-Type: text/css\r\n           ◄── always present          │
    │    Connection: close\r\n                ◄── always present          │
    │    \r\n                                 ◄── end of header block     │
    │    body { x }                           ◄── exactly 10 bytes        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE FRAMING RULE
=============================================================================

Content-Length must equal the number of body bytes that actually follow.
There is no chunked encoding and no keep-alive, so the client has exactly
two ways to find the end of the body: count bytes, or wait for close.
A wrong Content-Length makes clients hang or truncate.

The one deliberate exception is HEAD: the headers describe the resource
(its real Content-Length) but no body bytes are sent.

=============================================================================
HEADERS FIRST, BODY SECOND
=============================================================================

The header block is always serialized and sent as one write, and only
after the body is known to be producible. Committing to "200 OK" and then
discovering the body cannot be read would leave a response on the wire that
promises content it never delivers.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict

from .errors import HTTPError
from .status_codes import HTTPStatus


HTTP_VERSION = "HTTP/1.1"
CRLF = "\r\n"


@dataclass
class HTTPResponse:
    """
    A response ready to be serialized.

    Attributes:
        status: HTTP status.
        headers: Header name → value, in emission order.
        body: Body bytes. Empty for HEAD responses.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def status_line(self) -> str:
        """``HTTP/1.1 404 Not Found``"""
        return f"{HTTP_VERSION} {int(self.status)} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        return int(self.headers.get("Content-Length", len(self.body)))

    def header_bytes(self) -> bytes:
        """
        Serialize the status line and header block, blank line included.

        Content-Length defaults to the body size when not set explicitly.
        Connection is always ``close``: one request per connection.
        """
        headers = dict(self.headers)
        headers.setdefault("Content-Length", str(len(self.body)))
        headers.setdefault("Content-Type", "text/plain")
        headers["Connection"] = "close"

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())

        # Header block ends with an empty line
        return (CRLF.join(lines) + CRLF + CRLF).encode("latin-1")

    def to_bytes(self) -> bytes:
        """Header block followed by the body, as one buffer."""
        return self.header_bytes() + self.body


# =============================================================================
# CONSTRUCTORS
# =============================================================================

def file_response(content_type: str, content_length: int, body: bytes = b"") -> HTTPResponse:
    """
    A 200 response for a resolved file.

    ``content_length`` is passed separately from ``body`` so that HEAD can
    advertise the file's size while carrying no body.
    """
    return HTTPResponse(
        status=HTTPStatus.OK,
        headers={
            "Content-Length": str(content_length),
            "Content-Type": content_type,
        },
        body=body,
    )


def error_response(error: HTTPError, head: bool = False) -> HTTPResponse:
    """
    The response for a request-level failure.

    Status line, framing headers, any headers the error requires, then the
    short plain-text explanation followed by CRLF.

    Args:
        error: The failure to report.
        head: True when answering a HEAD request; the body is then left
              off the wire but still counted in Content-Length.
    """
    text = (error.message + CRLF).encode("utf-8")

    headers = {
        "Content-Length": str(len(text)),
        "Content-Type": "text/plain",
    }
    headers.update(error.headers)

    return HTTPResponse(
        status=error.status,
        headers=headers,
        body=b"" if head else text,
    )


def service_unavailable(message: str = "Server is overloaded.") -> HTTPResponse:
    """503, sent by the accept loop when the worker pool cannot take a connection."""
    text = (message + CRLF).encode("utf-8")
    return HTTPResponse(
        status=HTTPStatus.SERVICE_UNAVAILABLE,
        headers={"Content-Length": str(len(text)), "Content-Type": "text/plain"},
        body=text,
    )
