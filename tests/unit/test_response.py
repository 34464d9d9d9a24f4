"""
Unit tests for response framing, error responses and status codes.
"""

import pytest

from staticserver.http.errors import (
    HTTPError,
    MethodError,
    PathError,
    ResourceError,
    ResourceLimitError,
    VersionError,
    ProtocolError,
)
from staticserver.http.response import (
    HTTPResponse,
    error_response,
    file_response,
    service_unavailable,
)
from staticserver.http.status_codes import HTTPStatus


class TestHTTPResponse:
    """Tests for HTTPResponse serialization."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_header_block_ends_with_blank_line(self):
        data = HTTPResponse(body=b"hi").header_bytes()

        assert data.endswith(b"\r\n\r\n")
        assert data.count(b"\r\n\r\n") == 1

    def test_framing_headers_always_present(self):
        data = HTTPResponse(body=b"hello").header_bytes()

        assert b"Content-Length: 5\r\n" in data
        assert b"Content-Type: text/plain\r\n" in data
        assert b"Connection: close\r\n" in data

    def test_connection_close_cannot_be_overridden(self):
        response = HTTPResponse(headers={"Connection": "keep-alive"})

        assert b"Connection: close" in response.header_bytes()
        assert b"keep-alive" not in response.header_bytes()

    def test_to_bytes(self):
        raw = HTTPResponse(body=b"abc").to_bytes()

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
        assert raw.endswith(b"\r\n\r\nabc")


class TestFileResponse:

    def test_get(self):
        response = file_response("text/css", 10, b"body { x }")

        assert response.status is HTTPStatus.OK
        assert response.content_length == 10
        assert response.headers["Content-Type"] == "text/css"
        assert response.to_bytes().endswith(b"\r\n\r\nbody { x }")

    def test_head_advertises_length_without_body(self):
        response = file_response("text/css", 10)

        assert b"Content-Length: 10\r\n" in response.header_bytes()
        assert response.body == b""
        assert response.to_bytes().endswith(b"\r\n\r\n")


class TestErrorResponse:
    """Every error response carries framing headers and a short body."""

    @pytest.mark.parametrize("error, status, text", [
        (ProtocolError(), 400, b"Malformed request line.\r\n"),
        (ProtocolError("Incomplete HTTP request."), 400, b"Incomplete HTTP request.\r\n"),
        (PathError(), 403, b"Invalid path.\r\n"),
        (ResourceError(), 404, b"The requested file was not found.\r\n"),
        (MethodError(), 405, b"Supported methods: GET, HEAD.\r\n"),
        (ResourceLimitError(), 500, b"Memory allocation failed.\r\n"),
        (VersionError(), 505, b"HTTP version not supported.\r\n"),
    ])
    def test_error_bodies(self, error: HTTPError, status: int, text: bytes, parse_response):
        code, headers, body = parse_response(error_response(error).to_bytes())

        assert code == status
        assert body == text
        assert headers["Content-Length"] == str(len(text))
        assert headers["Content-Type"] == "text/plain"
        assert headers["Connection"] == "close"

    def test_method_error_lists_allowed_methods(self, parse_response):
        _, headers, _ = parse_response(error_response(MethodError()).to_bytes())

        assert headers["Allow"] == "GET, HEAD"

    def test_head_error_has_no_body(self, parse_response):
        code, headers, body = parse_response(error_response(ResourceError(), head=True).to_bytes())

        assert code == 404
        assert body == b""
        assert headers["Content-Length"] == str(len(b"The requested file was not found.\r\n"))

    def test_service_unavailable(self, parse_response):
        code, headers, body = parse_response(service_unavailable().to_bytes())

        assert code == 503
        assert headers["Content-Length"] == str(len(body))
        assert headers["Connection"] == "close"


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.FORBIDDEN.phrase == "Forbidden"
        assert HTTPStatus.METHOD_NOT_ALLOWED.phrase == "Method Not Allowed"
        assert HTTPStatus.HTTP_VERSION_NOT_SUPPORTED.phrase == "HTTP Version Not Supported"

    def test_status_categories(self):
        assert HTTPStatus.OK.is_success
        assert not HTTPStatus.OK.is_error

        assert HTTPStatus.NOT_FOUND.is_client_error
        assert HTTPStatus.NOT_FOUND.is_error

        assert HTTPStatus.SERVICE_UNAVAILABLE.is_server_error
        assert not HTTPStatus.SERVICE_UNAVAILABLE.is_client_error
