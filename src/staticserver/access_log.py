"""
=============================================================================
ACCESS LOG
=============================================================================

One line per answered request, on its own logger so it can be routed,
silenced or shipped independently of the diagnostic logs:

    logging.getLogger("staticserver.access").setLevel(logging.WARNING)
    logging.getLogger("staticserver.access").addHandler(file_handler)

Two formats:

    text   127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /a.css HTTP/1.1" 200 10 0.41ms
    json   {"request_id": "1a2b3c4d", "method": "GET", "path": "/a.css", ...}

Connections that close without a request (idle timeout, peer hang-up) are
not logged here; there is nothing to log.

=============================================================================
"""

import json
import time
import logging
from dataclasses import dataclass, asdict


logger = logging.getLogger("staticserver.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

    request_id:     Connection id, matches the diagnostic logs
    method:         Method token as received ("-" if unparseable)
    path:           Request target as received ("-" if unparseable)
    version:        Version token as received
    client_ip:      Client address
    status_code:    Status sent
    content_length: Bytes written to the client, headers included
    duration_ms:    Time from first read to close
    timestamp:      Local time the request finished
    """

    request_id: str
    method: str
    path: str
    version: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache common log format, with the duration appended."""
        request_line = " ".join(p for p in (self.method, self.path, self.version) if p)
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{request_line}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits RequestLog entries in the configured format.

    Usage:
        access = AccessLogger(log_format="json")
        access.log(entry)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def log(self, entry: RequestLog):
        if not logger.isEnabledFor(self.log_level):
            return

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())


def timestamp() -> str:
    """Current local time in access-log form."""
    return time.strftime("%d/%b/%Y:%H:%M:%S %z")
