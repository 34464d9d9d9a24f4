"""
=============================================================================
REQUEST PROCESSOR
=============================================================================

Handles exactly one request on one stream, from the first byte read to the
close.

=============================================================================
THE PIPELINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   RequestReader.read(stream)                                         │
    │        │  PEER_CLOSED ──────────────────────────────► close, silent  │
    │        │  INCOMPLETE ───────────────────────────────► 400            │
    │        ▼                                                             │
    │   RequestParser.parse()      not 3 tokens ──────────► 400            │
    │   RequestParser.validate()   method ────────────────► 405            │
    │                              version ───────────────► 505            │
    │                              HTTP/1.1 without Host ─► 400            │
    │        ▼                                                             │
    │   StaticFileHandler.resolve()   ".." or deep path ──► 403            │
    │   StaticFileHandler.open()      cannot open ────────► 404            │
    │        ▼                                                             │
    │   read body into memory (GET)   MemoryError ────────► 500            │
    │        ▼                                                             │
    │   write header block, then body                                      │
    │        ▼                                                             │
    │   close                                                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every failure above is an HTTPError and ends the request with the matching
error response. Nothing touches the filesystem until the request has passed
every check before it.

=============================================================================
NOTHING IS SENT UNTIL IT CAN ALL BE SENT
=============================================================================

The body is read before the first header byte is written. If reading fails
the client gets an honest 500 instead of a "200 OK" followed by nothing.

A failed write means the client is gone. There is no one left to answer, so
the processor stops writing and closes.

=============================================================================
"""

import time
import logging
from typing import Optional

from .access_log import AccessLogger, RequestLog, timestamp
from .core.reader import RequestReader, ReaderStatus
from .handlers.static import StaticFileHandler
from .http.errors import HTTPError, ProtocolError, TransportError
from .http.request import ParsedRequest, RequestParser
from .http.response import HTTPResponse, error_response, file_response


logger = logging.getLogger(__name__)


class RequestProcessor:
    """
    Runs the request pipeline on a stream.

    The processor holds no per-request state; one instance is shared by
    every worker thread.

    Usage:
        processor = RequestProcessor()
        processor.handle(conn)      # always closes conn
    """

    def __init__(
        self,
        reader: Optional[RequestReader] = None,
        parser: Optional[RequestParser] = None,
        handler: Optional[StaticFileHandler] = None,
        access_logger: Optional[AccessLogger] = None,
    ):
        self.reader = reader or RequestReader()
        self.parser = parser or RequestParser()
        self.handler = handler or StaticFileHandler()
        self.access_logger = access_logger or AccessLogger()

    def handle(self, stream) -> None:
        """
        Read one request from ``stream``, answer it and close the stream.

        Args:
            stream: Anything with ``read(n)``, ``write(data) -> int`` and
                    ``close()``. Usually a Connection.
        """
        start_time = time.time()
        request: Optional[ParsedRequest] = None
        response: Optional[HTTPResponse] = None
        sent = 0

        try:
            # ─────────────────────────────────────────────────────────────
            # READ
            # ─────────────────────────────────────────────────────────────
            outcome = self.reader.read(stream)

            if outcome.status is ReaderStatus.PEER_CLOSED:
                logger.debug(f"[{_stream_id(stream)}] Peer closed before a request arrived")
                return

            try:
                if outcome.status is ReaderStatus.INCOMPLETE:
                    raise ProtocolError("Incomplete HTTP request.")

                # ─────────────────────────────────────────────────────────
                # PARSE AND VALIDATE
                # ─────────────────────────────────────────────────────────
                request = self.parser.parse(outcome.data)
                logger.debug(f"[{_stream_id(stream)}] Received request {request.request_line!r}")
                self.parser.validate(request)

                # ─────────────────────────────────────────────────────────
                # RESOLVE AND PREPARE
                # ─────────────────────────────────────────────────────────
                response = self._serve(request)

            except HTTPError as e:
                logger.debug(f"[{_stream_id(stream)}] {e.status_code} {e.message}")
                response = error_response(e, head=request is not None and request.is_head)

            # ─────────────────────────────────────────────────────────────
            # SEND
            # ─────────────────────────────────────────────────────────────
            sent = self._send(stream, response)

        except TransportError as e:
            logger.debug(f"[{_stream_id(stream)}] Client went away: {e}")

        finally:
            stream.close()

            if response is not None:
                self._log_access(stream, request, response, sent, start_time)

    def _serve(self, request: ParsedRequest) -> HTTPResponse:
        """
        Build the 200 response for a validated request.

        The file is opened, measured, read (GET only) and closed here, so
        by the time anything is written the response is final.

        Raises:
            PathError, ResourceError, ResourceLimitError
        """
        name = self.handler.resolve(request.target, request.full_target)

        with self.handler.open(name) as resource:
            if request.is_head:
                return file_response(resource.content_type, resource.length)

            body = resource.read_body()
            return file_response(resource.content_type, len(body), body)

    def _send(self, stream, response: HTTPResponse) -> int:
        """
        Write the header block, then the body.

        Returns:
            Total bytes written.

        Raises:
            TransportError: A write failed; the rest is not attempted.
        """
        sent = _write_all(stream, response.header_bytes())
        if response.body:
            sent += _write_all(stream, response.body)
        return sent

    def _log_access(self, stream, request, response, sent, start_time):
        entry = RequestLog(
            request_id=_stream_id(stream),
            method=request.method_token if request else "-",
            path=request.target if request else "-",
            version=request.version_token if request else "",
            client_ip=getattr(stream, "client_ip", "") or "-",
            status_code=int(response.status),
            content_length=sent,
            duration_ms=(time.time() - start_time) * 1000,
            timestamp=timestamp(),
        )
        self.access_logger.log(entry)


def _write_all(stream, data: bytes) -> int:
    """
    Write all of ``data``, resuming after partial writes.

    Raises:
        TransportError: The stream raised or stopped accepting bytes.
    """
    view = memoryview(data)
    offset = 0

    while offset < len(view):
        try:
            written = stream.write(view[offset:])
        except OSError as e:
            raise TransportError(f"write failed after {offset} of {len(view)} bytes: {e}") from e

        if not written:
            raise TransportError(f"stream accepted 0 bytes after {offset} of {len(view)}")
        offset += written

    return offset


def _stream_id(stream) -> str:
    return getattr(stream, "id", None) or "-"
