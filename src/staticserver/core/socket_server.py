"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket: resolve, bind, listen, accept. Every accepted
client socket is wrapped in a Connection and handed to a callback; what
happens to it after that is none of this module's business.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. getaddrinfo()  Turn "host:port" into concrete addresses
                      └─ AF_UNSPEC: IPv4 and IPv6 both acceptable
                      └─ AI_PASSIVE: an empty host means "every interface"

    2. socket()       Create a socket for the first address that works
    3. bind()         Reserve that address for this process
    4. listen()       Let the kernel queue up to `backlog` pending clients
    5. accept()       One new socket per client; the listener keeps listening
    6. close()        Release the listening socket on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘     Never sends/receives data
                                │
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client 1  │         │ Client 2  │         │ Client 3  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:
    Restarting the server must not fail with "Address already in use" while
    old connections sit in TIME_WAIT.

TCP_NODELAY:
    Disables Nagle's algorithm. The header block goes out in one write and
    should not sit in a kernel buffer waiting for company.

=============================================================================
BIND FAILURES
=============================================================================

The two errors people actually hit get a readable message:

    EACCES      Ports below 1024 need elevated privileges
    EADDRINUSE  Something else is already listening there

Both surface as BindError, which the command line turns into exit status 1.

=============================================================================
SIGNAL HANDLING
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop, systemd) stop the accept
loop instead of killing the process mid-response. Handlers can only be
installed from the main thread; a server started from any other thread
(tests, embedding) runs without them and is stopped with shutdown().

=============================================================================
"""

import errno
import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class BindError(OSError):
    """The listening socket could not be created or bound."""


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        ├──► _create_socket()   getaddrinfo + socket + bind + listen  │
    │        ├──► _setup_signals()   SIGTERM/SIGINT → shutdown()           │
    │        └──► _accept_loop()     blocks here                           │
    │                 └──► accept() → Connection → handler(conn)           │
    │                                                                      │
    │    shutdown()        clears _running; the loop notices within 1s     │
    │    _cleanup()        restores signals, closes the listener           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    # How often accept() gives up so the loop can check _running
    ACCEPT_POLL_INTERVAL = 1.0

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, timeouts).

        The socket is not created until start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the listener is bound; tests wait on it
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bound_address(self) -> Optional[Tuple]:
        """The address actually bound. Differs from the configured port when that is 0."""
        if self._socket is None:
            return None
        return self._socket.getsockname()

    def _create_socket(self) -> socket.socket:
        """
        Resolve the configured address and return a bound, listening socket.

        Every address getaddrinfo() offers is tried in order; the first one
        that binds wins.

        Raises:
            BindError: No address could be bound.
        """
        host = self.config.host or None

        try:
            candidates = socket.getaddrinfo(
                host,
                self.config.port,
                family=socket.AF_UNSPEC,
                type=socket.SOCK_STREAM,
                flags=socket.AI_PASSIVE,
            )
        except socket.gaierror as e:
            raise BindError(f"Cannot resolve {self.config.host!r}: {e}") from e

        last_error: Optional[OSError] = None

        for family, socktype, proto, _, sockaddr in candidates:
            try:
                sock = socket.socket(family, socktype, proto)
            except OSError as e:
                last_error = e
                continue

            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
                sock.bind(sockaddr)
                sock.listen(self.config.backlog)
            except OSError as e:
                last_error = e
                sock.close()
                continue

            # Periodic wake-up so shutdown() is noticed
            sock.settimeout(self.ACCEPT_POLL_INTERVAL)
            return sock

        raise self._bind_error(last_error)

    def _bind_error(self, error: Optional[OSError]) -> BindError:
        where = f"{self.config.host}:{self.config.port}"

        if error is None:
            return BindError(f"No usable address for {where}")
        if error.errno == errno.EACCES:
            return BindError(
                errno.EACCES,
                f"Permission denied binding {where}: ports below 1024 need elevated privileges",
            )
        if error.errno == errno.EADDRINUSE:
            return BindError(
                errno.EADDRINUSE,
                f"Address {where} is already in use: is another server running?",
            )
        return BindError(error.errno, f"Failed to bind {where}: {error.strerror or error}")

    def _setup_signals(self):
        """Install SIGTERM/SIGINT handlers that trigger a graceful shutdown."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections until shutdown() is called.

        Args:
            connection_handler: Receives each accepted Connection. It must
                                not block for long; the accept loop waits
                                for it.

        Raises:
            BindError: The listening socket could not be set up.
        """
        try:
            self._socket = self._create_socket()
        except BindError as e:
            logger.error(str(e))
            raise

        self._running = True
        self._setup_signals()

        host, port = self._socket.getsockname()[:2]
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except TimeoutError:
                # Poll interval elapsed; re-check _running
                continue
            except InterruptedError:
                continue
            except OSError as e:
                # Listener closed under us, usually during shutdown
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    read_timeout=self.config.read_timeout,
                    write_timeout=self.config.write_timeout,
                )
            except OSError as e:
                # Client vanished between accept() and setup
                logger.debug(f"Dropping connection from {client_address[0]}: {e}")
                client_socket.close()
                continue

            connection_handler(conn)

    def shutdown(self):
        """Stop accepting connections. Safe to call from any thread, repeatedly."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listener is bound. Returns False on timeout."""
        return self._ready_event.wait(timeout)
