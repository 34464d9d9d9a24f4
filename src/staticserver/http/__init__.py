"""
HTTP protocol pieces: status codes, error taxonomy, request parsing,
response framing and MIME detection.
"""

from .status_codes import HTTPStatus
from .errors import (
    HTTPError,
    TransportError,
    ProtocolError,
    MethodError,
    VersionError,
    PathError,
    ResourceError,
    ResourceLimitError,
)
from .request import Method, Version, ParsedRequest, RequestParser, parse_request
from .response import HTTPResponse, file_response, error_response, service_unavailable
from .mime_types import get_mime_type, DEFAULT_MIME_TYPE

__all__ = [
    "HTTPStatus",
    "HTTPError",
    "TransportError",
    "ProtocolError",
    "MethodError",
    "VersionError",
    "PathError",
    "ResourceError",
    "ResourceLimitError",
    "Method",
    "Version",
    "ParsedRequest",
    "RequestParser",
    "parse_request",
    "HTTPResponse",
    "file_response",
    "error_response",
    "service_unavailable",
    "get_mime_type",
    "DEFAULT_MIME_TYPE",
]
