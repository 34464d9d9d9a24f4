"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Wires the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer (main thread)                                         │
    │        │ accept()                                                    │
    │        ▼                                                             │
    │   _handle_connection(conn)                                           │
    │        │ pool.submit(...)  ── queue full ──►  503, close             │
    │        ▼                                                             │
    │   ThreadPool worker                                                  │
    │        │                                                             │
    │        ▼                                                             │
    │   RequestProcessor.handle(conn)   read → parse → resolve → respond   │
    │                                   → close                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The accept loop never waits for a worker. When every worker is busy and the
queue is full, the new client gets an immediate 503 instead of a hang.

=============================================================================
GRACEFUL SHUTDOWN
=============================================================================

    1. SIGINT/SIGTERM (or shutdown()) stops the accept loop
    2. The listening socket is closed; new clients are refused by the kernel
    3. Queued and in-flight requests are given time to finish
    4. Connections still queued when that time runs out are closed
    5. Worker threads are stopped

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .access_log import AccessLogger
from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool, Task, RequestReader
from .handlers import serve_static
from .http import RequestParser, service_unavailable
from .processor import RequestProcessor


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Upper bound on waiting for in-flight requests at shutdown
SHUTDOWN_TIMEOUT = 30.0

# Rejections happen on the accept thread; keep the write and close short
REJECT_WRITE_TIMEOUT = 0.1
REJECT_DRAIN_TIMEOUT = 0.05


class StaticServer:
    """
    Serves files from a directory over HTTP, one request per connection.

    Usage:
        server = StaticServer(ServerConfig(port=8080))
        server.run()            # blocks until Ctrl+C / SIGTERM

    From another thread (tests, embedding):
        thread = threading.Thread(target=server.run)
        thread.start()
        server.wait_until_ready()
        ...
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None, root_dir: Optional[str] = None):
        """
        Args:
            config: Server configuration. Defaults are used if not provided.
            root_dir: Document root. None serves the working directory.

        Raises:
            ValueError: The configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
            on_discard=self._abandon,
        )
        self._processor = RequestProcessor(
            reader=RequestReader(
                max_size=self.config.buffer_size,
                max_attempts=self.config.max_read_attempts,
            ),
            parser=RequestParser(),
            handler=serve_static(root_dir),
            access_logger=AccessLogger(log_format=self.config.log_format),
        )

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    @property
    def bound_address(self) -> Optional[Tuple]:
        """Address actually listened on; useful when port is 0."""
        return self._socket_server.bound_address

    @property
    def stats(self) -> dict:
        return self._thread_pool.stats

    def run(self):
        """
        Start the server (blocking).

        Raises:
            BindError: The listening socket could not be set up.
        """
        self._setup_logging()
        self._thread_pool.start()

        logger.info(
            f"Starting static file server on {self.config.host}:{self.config.port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        logging.getLogger("staticserver").setLevel(level)

        if self.config.log_format == "json":
            # Access lines are already JSON; keep them free of the text prefix
            access = logging.getLogger("staticserver.access")
            if not access.handlers:
                handler = logging.StreamHandler()
                handler.setFormatter(logging.Formatter("%(message)s"))
                access.addHandler(handler)
                access.propagate = False

    def _handle_connection(self, conn: Connection):
        """
        Hand a new connection to the pool (runs in the accept loop).

        Never blocks: a full queue is answered with 503 right here.
        """
        try:
            submitted = self._thread_pool.submit(self._processor.handle, args=(conn,))
        except RuntimeError:
            # Pool is shutting down
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection from {conn.client_ip}")
            self._reject(conn)

    def _reject(self, conn: Connection):
        """Answer 503 and close, without holding up the accept loop."""
        conn.write_all(service_unavailable().to_bytes(), timeout=REJECT_WRITE_TIMEOUT)
        conn.close(drain_timeout=REJECT_DRAIN_TIMEOUT)

    def _abandon(self, task: Task):
        """Close the connection of a task that never reached a worker."""
        for arg in task.args:
            if isinstance(arg, Connection):
                logger.debug(f"[{arg.id}] Closing queued connection at shutdown")
                arg.close(drain_timeout=REJECT_DRAIN_TIMEOUT)

    def shutdown(self):
        """Stop accepting connections; run() then finishes the shutdown."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._socket_server.shutdown()
        self._thread_pool.shutdown(wait=True, timeout=SHUTDOWN_TIMEOUT)
        logger.info("Server stopped")


def create_server(
    host: str = "127.0.0.1",
    port: int = 8080,
    root_dir: Optional[str] = None,
    **kwargs
) -> StaticServer:
    """
    Factory function to create a StaticServer.

    Example:
        server = create_server(port=3000, max_workers=32, log_level="DEBUG")
        server.run()
    """
    config = ServerConfig(host=host, port=port, **kwargs)
    return StaticServer(config, root_dir=root_dir)
