"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, List, Optional, Tuple, Dict
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import StaticServer, ServerConfig


STYLE_CSS = b"body { x }"
INDEX_HTML = b"<html><body>home</body></html>\n"
README_TXT = b"nested readme\n"


@pytest.fixture
def sample_get_request() -> bytes:
    """HTTP/1.1 GET with the required Host header."""
    return (
        b"GET /style.css HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_head_request() -> bytes:
    return b"HEAD /style.css HTTP/1.1\r\nHost: localhost\r\n\r\n"


@pytest.fixture
def sample_http10_request() -> bytes:
    """HTTP/1.0 needs no Host header."""
    return b"GET /style.css HTTP/1.0\r\n\r\n"


@pytest.fixture
def docroot(tmp_path: Path, monkeypatch) -> Path:
    """
    A small document root, made the working directory for the test.

        index.html
        style.css          10 bytes
        logo.PNG
        data.bin
        docs/readme.txt
        docs/deeper/x.txt  (unreachable: three slashes)
    """
    (tmp_path / "index.html").write_bytes(INDEX_HTML)
    (tmp_path / "style.css").write_bytes(STYLE_CSS)
    (tmp_path / "logo.PNG").write_bytes(b"\x89PNG\r\n\x1a\n")
    (tmp_path / "data.bin").write_bytes(bytes(range(256)))
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "readme.txt").write_bytes(README_TXT)
    (tmp_path / "docs" / "deeper").mkdir()
    (tmp_path / "docs" / "deeper" / "x.txt").write_bytes(b"too deep\n")

    monkeypatch.chdir(tmp_path)
    return tmp_path


class FakeStream:
    """
    In-memory stand-in for a Connection.

    ``chunks`` are returned by successive read() calls; an exception instance
    in the list is raised instead. Once the list is exhausted, read() returns
    b"" (peer closed).

    Writes are recorded. ``write_limit`` caps how many bytes one write()
    accepts, to exercise partial-write handling; ``write_error`` is raised
    by every write() when set.
    """

    def __init__(
        self,
        chunks=(),
        write_limit: Optional[int] = None,
        write_error: Optional[BaseException] = None,
    ):
        self.chunks: list = list(chunks)
        self.write_limit = write_limit
        self.write_error = write_error

        self.id = "fake0001"
        self.client_ip = "127.0.0.1"

        self.read_sizes: List[int] = []
        self.writes: List[bytes] = []
        self.close_count = 0

    def read(self, max_bytes: int) -> bytes:
        self.read_sizes.append(max_bytes)
        if not self.chunks:
            return b""

        chunk = self.chunks.pop(0)
        if isinstance(chunk, BaseException):
            raise chunk

        if len(chunk) > max_bytes:
            self.chunks.insert(0, chunk[max_bytes:])
            chunk = chunk[:max_bytes]
        return chunk

    def write(self, data) -> int:
        if self.write_error is not None:
            raise self.write_error

        data = bytes(data)
        if self.write_limit is not None:
            data = data[:self.write_limit]
        self.writes.append(data)
        return len(data)

    def close(self):
        self.close_count += 1

    @property
    def output(self) -> bytes:
        return b"".join(self.writes)


@pytest.fixture
def fake_stream():
    """Factory: ``fake_stream([b"GET / HTTP/1.0\\r\\n\\r\\n"])``."""
    return FakeStream


def split_response(raw: bytes) -> Tuple[int, Dict[str, str], bytes]:
    """Split a raw response into (status code, headers, body)."""
    head, sep, body = raw.partition(b"\r\n\r\n")
    assert sep, f"no header terminator in {raw!r}"

    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ", 2)[1])

    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip()] = value.strip()

    return status, headers, body


@pytest.fixture
def parse_response():
    return split_response


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class LiveServer:
    """StaticServer running in a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        host, port = self.server.bound_address[:2]
        return host, port

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def connect(self) -> socket.socket:
        sock = socket.create_connection(self.address, timeout=5.0)
        return sock

    def request(self, raw: bytes) -> bytes:
        """Send ``raw`` and return everything the server sends back before closing."""
        with self.connect() as sock:
            sock.sendall(raw)
            return recv_all(sock)


def recv_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def live_server(docroot: Path) -> Generator[LiveServer, None, None]:
    """A running server on a kernel-assigned port, serving ``docroot``."""
    server = StaticServer(
        ServerConfig(
            host="127.0.0.1",
            port=0,
            min_workers=2,
            max_workers=4,
            read_timeout=1.0,
            write_timeout=2.0,
            log_level="WARNING",
        ),
        root_dir=str(docroot),
    )

    live = LiveServer(server)
    live.start()

    yield live

    live.stop()
