"""
Unit tests for the request processor, driven through an in-memory stream.
"""

import json
import logging
import os
from pathlib import Path

import pytest

from staticserver.access_log import AccessLogger
from staticserver.core.reader import RequestReader
from staticserver.handlers.static import ResolvedResource, StaticFileHandler
from staticserver.processor import RequestProcessor


class SpyHandler(StaticFileHandler):
    """Records every filesystem open."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.opened = []

    def open(self, name):
        self.opened.append(name)
        return super().open(name)


class _ExplodingFile:
    closed = False

    def read(self, n):
        raise MemoryError()

    def close(self):
        self.closed = True


class OutOfMemoryHandler(StaticFileHandler):
    """Opens fine, then fails to allocate the body."""

    def __init__(self):
        super().__init__()
        self.file = _ExplodingFile()

    def open(self, name):
        return ResolvedResource(name, self.file, 10**12, "application/octet-stream")


@pytest.fixture
def spy() -> SpyHandler:
    return SpyHandler()


@pytest.fixture
def processor(spy: SpyHandler) -> RequestProcessor:
    return RequestProcessor(handler=spy)


def run(processor, fake_stream, *chunks, **stream_kwargs):
    stream = fake_stream(list(chunks), **stream_kwargs)
    processor.handle(stream)
    return stream


class TestScenarios:
    """End-to-end request handling on a fake stream."""

    def test_missing_file_is_404(self, docroot, processor, fake_stream, parse_response):
        stream = run(processor, fake_stream, b"GET /missing.txt HTTP/1.1\r\nHost: x\r\n\r\n")

        status, headers, body = parse_response(stream.output)
        assert status == 404
        assert body == b"The requested file was not found.\r\n"

    def test_existing_file_is_200(self, docroot, processor, fake_stream, parse_response):
        stream = run(processor, fake_stream, b"GET /style.css HTTP/1.1\r\nHost: x\r\n\r\n")

        status, headers, body = parse_response(stream.output)
        assert status == 200
        assert headers["Content-Type"] == "text/css"
        assert headers["Content-Length"] == "10"
        assert headers["Connection"] == "close"
        assert body == (docroot / "style.css").read_bytes()

    def test_unsupported_method_is_405_without_filesystem_access(
        self, docroot, processor, spy, fake_stream, parse_response
    ):
        stream = run(processor, fake_stream, b"DELETE / HTTP/1.1\r\nHost: x\r\n\r\n")

        status, headers, _ = parse_response(stream.output)
        assert status == 405
        assert headers["Allow"] == "GET, HEAD"
        assert spy.opened == []

    def test_traversal_is_403_without_filesystem_access(
        self, docroot, processor, spy, fake_stream, parse_response
    ):
        stream = run(processor, fake_stream, b"GET /a/b/../../etc/passwd HTTP/1.1\r\nHost: x\r\n\r\n")

        status, _, body = parse_response(stream.output)
        assert status == 403
        assert body == b"Invalid path.\r\n"
        assert spy.opened == []

    @pytest.mark.parametrize("target", [
        b"/" + b"a" * 260 + b"/../../etc/passwd",
        b"/docs" + b"x" * 251 + b"/a/b/c",
    ])
    def test_traversal_past_truncation_is_403_without_filesystem_access(
        self, docroot, processor, spy, fake_stream, parse_response, target
    ):
        stream = run(processor, fake_stream, b"GET " + target + b" HTTP/1.0\r\n\r\n")

        status, _, _ = parse_response(stream.output)
        assert status == 403
        assert spy.opened == []

    def test_non_utf8_file_name_is_served(self, docroot, processor, fake_stream, parse_response):
        try:
            with open(os.path.join(os.fsencode(docroot), b"caf\xe9.txt"), "wb") as f:
                f.write(b"latin-1 name")
        except (OSError, UnicodeError):
            pytest.skip("filesystem rejects non-UTF-8 file names")

        stream = run(processor, fake_stream, b"GET /caf\xe9.txt HTTP/1.0\r\n\r\n")

        status, headers, body = parse_response(stream.output)
        assert status == 200
        assert headers["Content-Type"] == "text/plain"
        assert body == b"latin-1 name"

    def test_utf8_file_name_is_served(self, docroot, processor, fake_stream, parse_response):
        (docroot / "café.txt").write_bytes(b"utf-8 name")

        stream = run(processor, fake_stream, "GET /café.txt HTTP/1.0\r\n\r\n".encode("utf-8"))

        status, _, body = parse_response(stream.output)
        assert status == 200
        assert body == b"utf-8 name"

    def test_stalled_request_is_never_200(self, docroot, processor, fake_stream, parse_response):
        stream = run(processor, fake_stream, b"GET / HTTP/1.1\r\n", TimeoutError())

        status, _, body = parse_response(stream.output)
        assert status == 400
        assert body == b"Incomplete HTTP request.\r\n"

    def test_trickling_request_exhausts_read_budget(self, docroot, fake_stream, parse_response):
        processor = RequestProcessor(reader=RequestReader(max_attempts=4))

        stream = run(processor, fake_stream, b"G", b"E", b"T", b" ", b"/")

        status, _, _ = parse_response(stream.output)
        assert status == 400


class TestResponseFraming:

    def test_content_length_matches_body_for_binary_file(self, docroot, processor, fake_stream, parse_response):
        stream = run(processor, fake_stream, b"GET /data.bin HTTP/1.0\r\n\r\n")

        status, headers, body = parse_response(stream.output)
        assert status == 200
        assert int(headers["Content-Length"]) == len(body) == 256
        assert body == bytes(range(256))
        assert headers["Content-Type"] == "application/octet-stream"

    def test_head_sends_no_body(self, docroot, processor, fake_stream, parse_response):
        stream = run(processor, fake_stream, b"HEAD /data.bin HTTP/1.1\r\nHost: x\r\n\r\n")

        status, headers, body = parse_response(stream.output)
        assert status == 200
        assert headers["Content-Length"] == "256"
        assert body == b""

    def test_head_error_sends_no_body(self, docroot, processor, fake_stream, parse_response):
        stream = run(processor, fake_stream, b"HEAD /nope HTTP/1.1\r\nHost: x\r\n\r\n")

        status, headers, body = parse_response(stream.output)
        assert status == 404
        assert body == b""
        assert int(headers["Content-Length"]) > 0

    def test_root_serves_index(self, docroot, processor, fake_stream):
        via_root = run(processor, fake_stream, b"GET / HTTP/1.1\r\nHost: x\r\n\r\n")
        via_name = run(processor, fake_stream, b"GET /index.html HTTP/1.1\r\nHost: x\r\n\r\n")

        assert via_root.output == via_name.output
        assert b"Content-Type: text/html" in via_root.output

    def test_header_block_is_one_write(self, docroot, processor, fake_stream):
        stream = run(processor, fake_stream, b"GET /style.css HTTP/1.0\r\n\r\n")

        assert stream.writes[0].startswith(b"HTTP/1.1 200 OK\r\n")
        assert stream.writes[0].endswith(b"\r\n\r\n")
        assert stream.writes[1] == b"body { x }"

    def test_partial_writes_are_resumed(self, docroot, processor, fake_stream, parse_response):
        stream = run(processor, fake_stream, b"GET /data.bin HTTP/1.0\r\n\r\n", write_limit=7)

        _, _, body = parse_response(stream.output)
        assert body == bytes(range(256))
        assert all(len(chunk) <= 7 for chunk in stream.writes)


class TestHostHeader:

    def test_http11_without_host_is_400(self, docroot, processor, fake_stream, parse_response):
        stream = run(processor, fake_stream, b"GET /style.css HTTP/1.1\r\n\r\n")

        status, _, body = parse_response(stream.output)
        assert status == 400
        assert body == b"Host header is required.\r\n"

    def test_http10_without_host_is_200(self, docroot, processor, fake_stream, sample_http10_request, parse_response):
        stream = run(processor, fake_stream, sample_http10_request)

        status, _, _ = parse_response(stream.output)
        assert status == 200


class TestErrors:

    def test_malformed_request_line(self, docroot, processor, fake_stream, parse_response):
        stream = run(processor, fake_stream, b"GET /\r\n\r\n")

        status, _, body = parse_response(stream.output)
        assert status == 400
        assert body == b"Malformed request line.\r\n"

    def test_unsupported_version(self, docroot, processor, fake_stream, parse_response):
        stream = run(processor, fake_stream, b"GET / HTTP/2.0\r\nHost: x\r\n\r\n")

        status, headers, body = parse_response(stream.output)
        assert status == 505
        assert int(headers["Content-Length"]) == len(body)

    def test_memory_error_is_500_and_never_200(self, fake_stream, parse_response):
        handler = OutOfMemoryHandler()
        processor = RequestProcessor(handler=handler)

        stream = run(processor, fake_stream, b"GET /big.bin HTTP/1.0\r\n\r\n")

        status, _, body = parse_response(stream.output)
        assert status == 500
        assert body == b"Memory allocation failed.\r\n"
        assert b"200 OK" not in stream.output
        assert handler.file.closed


class TestConnectionLifecycle:

    def test_peer_closed_is_silent(self, processor, fake_stream):
        stream = run(processor, fake_stream)

        assert stream.writes == []
        assert stream.close_count == 1

    def test_idle_timeout_is_silent(self, processor, fake_stream):
        stream = run(processor, fake_stream, TimeoutError())

        assert stream.writes == []
        assert stream.close_count == 1

    @pytest.mark.parametrize("raw", [
        b"GET /style.css HTTP/1.0\r\n\r\n",
        b"GET /missing HTTP/1.0\r\n\r\n",
        b"POST / HTTP/1.0\r\n\r\n",
        b"garbage\r\n\r\n",
    ])
    def test_closed_exactly_once(self, docroot, processor, fake_stream, raw):
        stream = run(processor, fake_stream, raw)

        assert stream.close_count == 1

    def test_write_failure_still_closes(self, docroot, processor, fake_stream):
        stream = run(
            processor, fake_stream, b"GET /style.css HTTP/1.0\r\n\r\n",
            write_error=BrokenPipeError(),
        )

        assert stream.close_count == 1

    def test_unexpected_error_still_closes(self, fake_stream):
        class BrokenHandler(StaticFileHandler):
            def open(self, name):
                raise RuntimeError("boom")

        processor = RequestProcessor(handler=BrokenHandler())
        stream = fake_stream([b"GET /x HTTP/1.0\r\n\r\n"])

        with pytest.raises(RuntimeError):
            processor.handle(stream)

        assert stream.close_count == 1


class TestAccessLog:

    def test_text_entry(self, docroot, processor, fake_stream, caplog):
        caplog.set_level(logging.INFO, logger="staticserver.access")

        run(processor, fake_stream, b"GET /style.css HTTP/1.0\r\n\r\n")

        records = [r for r in caplog.records if r.name == "staticserver.access"]
        assert len(records) == 1
        assert '"GET /style.css HTTP/1.0" 200' in records[0].getMessage()

    def test_json_entry(self, docroot, fake_stream, caplog):
        caplog.set_level(logging.INFO, logger="staticserver.access")
        processor = RequestProcessor(access_logger=AccessLogger(log_format="json"))

        run(processor, fake_stream, b"GET /nope HTTP/1.0\r\n\r\n")

        record = next(r for r in caplog.records if r.name == "staticserver.access")
        entry = json.loads(record.getMessage())
        assert entry["status_code"] == 404
        assert entry["path"] == "/nope"
        assert entry["client_ip"] == "127.0.0.1"

    def test_no_entry_when_peer_closed(self, processor, fake_stream, caplog):
        caplog.set_level(logging.INFO, logger="staticserver.access")

        run(processor, fake_stream)

        assert not [r for r in caplog.records if r.name == "staticserver.access"]
