"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the bytes collected by the RequestReader into a ParsedRequest, and
validates the parsed request against what this server supports.

=============================================================================
WHAT WE ACTUALLY LOOK AT
=============================================================================

A static file server answering GET and HEAD needs very little of a request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    GET /style.css HTTP/1.1\r\n       ◄── request line: all of it    │
    │    Host: localhost:8080\r\n          ◄── only "is there a Host?"    │
    │    User-Agent: curl/8.5.0\r\n        ◄── ignored                    │
    │    Accept: */*\r\n                   ◄── ignored                    │
    │    \r\n                              ◄── terminator                 │
    │    (anything after is ignored, GET/HEAD carry no body)              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSE, THEN VALIDATE
=============================================================================

Parsing never rejects a method or version it does not know. It records them
as Method.UNSUPPORTED / Version.UNSUPPORTED and keeps the raw token. The
validation step then walks the checks in a fixed order, stopping at the
first failure:

    1. request line has exactly three tokens     else 400
    2. method is GET or HEAD                     else 405
    3. version is HTTP/1.0 or HTTP/1.1           else 505
    4. HTTP/1.1 carries a Host header            else 400

=============================================================================
TOKEN LIMITS
=============================================================================

The request line tokens are length-limited so a hostile client cannot make
us carry arbitrarily long strings around:

    method  ≤   9 characters
    target  ≤ 255 characters
    version ≤   9 characters

Overlong tokens are truncated, not rejected. A truncated method or version
then simply fails validation ("GETTTTTTTTTT" becomes "GETTTTTTT", a 405).

The full target is still kept as ``raw_target``. The path checks run on it,
so a ".." hidden past character 255 is rejected rather than cut away.

=============================================================================
BYTES IN, NAMES OUT
=============================================================================

Tokens are split on ASCII whitespace while still bytes, then decoded as
UTF-8 with "surrogateescape". Bytes that are not valid UTF-8 survive as
lone surrogates, and os functions encode them back to the exact bytes the
client sent, so "GET /caf\\xe9.txt" opens the file whose name is those bytes.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum

from .errors import MethodError, ProtocolError, VersionError


MAX_METHOD_LENGTH = 9
MAX_TARGET_LENGTH = 255
MAX_VERSION_LENGTH = 9

HEADER_TERMINATOR = b"\r\n\r\n"


class Method(Enum):
    """Request methods, as far as this server is concerned."""

    GET = "GET"
    HEAD = "HEAD"
    UNSUPPORTED = "UNSUPPORTED"

    @classmethod
    def from_token(cls, token: str) -> "Method":
        # Case-sensitive: "get" is not GET
        for method in (cls.GET, cls.HEAD):
            if token == method.value:
                return method
        return cls.UNSUPPORTED


class Version(Enum):
    """HTTP protocol versions, as far as this server is concerned."""

    HTTP_1_0 = "HTTP/1.0"
    HTTP_1_1 = "HTTP/1.1"
    UNSUPPORTED = "UNSUPPORTED"

    @classmethod
    def from_token(cls, token: str) -> "Version":
        for version in (cls.HTTP_1_0, cls.HTTP_1_1):
            if token == version.value:
                return version
        return cls.UNSUPPORTED


@dataclass(frozen=True)
class ParsedRequest:
    """
    A parsed request line plus the one header fact we need.

    Immutable once constructed; lives for exactly one request.

    Attributes:
        method: GET, HEAD or UNSUPPORTED.
        target: Raw request target as sent (truncated to 255 characters).
        version: HTTP/1.0, HTTP/1.1 or UNSUPPORTED.
        has_host: Whether a ``Host:`` header line is present.
        method_token: The method exactly as received (for logs).
        version_token: The version exactly as received (for logs).
        raw_target: The untruncated target; empty means same as ``target``.
    """

    method: Method
    target: str
    version: Version
    has_host: bool = False
    method_token: str = ""
    version_token: str = ""
    raw_target: str = ""

    @property
    def full_target(self) -> str:
        return self.raw_target or self.target

    @property
    def is_head(self) -> bool:
        return self.method is Method.HEAD

    @property
    def request_line(self) -> str:
        """The request line as it would be logged."""
        return f"{self.method_token} {self.target} {self.version_token}"


class RequestParser:
    """
    Parses and validates the header block of a single request.

    Usage:
        parser = RequestParser()
        request = parser.parse(raw)     # ProtocolError on a bad request line
        parser.validate(request)        # MethodError / VersionError / ProtocolError
    """

    def parse(self, data: bytes) -> ParsedRequest:
        """
        Parse raw request bytes.

        Args:
            data: Buffered request bytes, terminator included. Anything past
                  the terminator is ignored.

        Returns:
            The parsed request.

        Raises:
            ProtocolError: If the request line is not exactly three tokens.
        """
        header_end = data.find(HEADER_TERMINATOR)
        if header_end == -1:
            raise ProtocolError("Incomplete HTTP request.")

        # Keep the CRLF that ends the last header so the Host search below
        # sees every header line the same way
        header_block = data[:header_end + 2]

        # ─────────────────────────────────────────────────────────────────
        # REQUEST LINE
        # ─────────────────────────────────────────────────────────────────
        # Everything up to the first LF. A bare LF is tolerated; any
        # whitespace (space, tab, stray CR) separates tokens.
        line_end = header_block.find(b"\n")

        # bytes.split() only splits on ASCII whitespace
        tokens = [
            token.decode("utf-8", errors="surrogateescape")
            for token in header_block[:line_end].split()
        ]
        if len(tokens) != 3:
            raise ProtocolError("Malformed request line.")

        method_token = tokens[0][:MAX_METHOD_LENGTH]
        raw_target = tokens[1]
        version_token = tokens[2][:MAX_VERSION_LENGTH]

        return ParsedRequest(
            method=Method.from_token(method_token),
            target=raw_target[:MAX_TARGET_LENGTH],
            version=Version.from_token(version_token),
            has_host=self._has_host_header(header_block),
            method_token=method_token,
            version_token=version_token,
            raw_target=raw_target,
        )

    def validate(self, request: ParsedRequest) -> None:
        """
        Check a parsed request against what the server supports.

        Raises:
            MethodError: Method is not GET or HEAD.
            VersionError: Version is not HTTP/1.0 or HTTP/1.1.
            ProtocolError: HTTP/1.1 request without a Host header.
        """
        if request.method is Method.UNSUPPORTED:
            raise MethodError()

        if request.version is Version.UNSUPPORTED:
            raise VersionError()

        # HTTP/1.0 predates virtual hosting and is exempt
        if request.version is Version.HTTP_1_1 and not request.has_host:
            raise ProtocolError("Host header is required.")

    def _has_host_header(self, header_block: bytes) -> bool:
        """
        Whether any header line begins with ``Host:``.

        Matched case-sensitively as ``\\r\\nHost:`` or ``\\nHost:`` so that
        the request line itself can never count as a header.
        """
        return b"\r\nHost:" in header_block or b"\nHost:" in header_block


def parse_request(data: bytes) -> ParsedRequest:
    """
    Parse and validate in one call.

    Convenience wrapper for callers (and tests) that want the first error
    in the parse/validate sequence raised directly.
    """
    parser = RequestParser()
    request = parser.parse(data)
    parser.validate(request)
    return request
