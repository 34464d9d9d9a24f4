"""
=============================================================================
STATIC SERVER CLI ENTRY POINT
=============================================================================

    # Serve the current directory on localhost:8080
    python -m staticserver

    # Address and port in one argument
    python -m staticserver 0.0.0.0:8000
    python -m staticserver [::1]:8000

    # Or separately
    python -m staticserver --host 0.0.0.0 --port 8000

    # Serve another directory
    python -m staticserver --directory ./public

Environment variables (HTTP_HOST, HTTP_PORT, ...) supply the defaults;
command-line arguments override them.

Exit status: 0 after a clean shutdown, 1 if the address cannot be bound,
2 for usage errors.

=============================================================================
"""

import argparse
import os
import sys
from typing import Optional, Sequence, Tuple

from . import __version__
from .config import ServerConfig
from .core import BindError
from .server import StaticServer


def parse_address(value: str) -> Tuple[str, int]:
    """
    Split ``ADDRESS:PORT`` into its parts.

    IPv6 literals go in brackets: ``[::1]:8080``.

    Raises:
        argparse.ArgumentTypeError: Missing colon or bad port.
    """
    host, sep, port = value.rpartition(":")
    if not sep or not port:
        raise argparse.ArgumentTypeError(f"expected ADDRESS:PORT, got {value!r}")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port_number = int(port)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port {port!r}")

    if not 0 <= port_number < 65536:
        raise argparse.ArgumentTypeError(f"port out of range: {port_number}")

    return host, port_number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Serve static files over HTTP (GET and HEAD, one request per connection)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticserver                        # localhost:8080, current directory
  python -m staticserver 0.0.0.0:8000           # all interfaces, port 8000
  python -m staticserver --directory ./public   # serve ./public
  python -m staticserver --log-format json      # JSON access log
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "address",
        nargs="?",
        type=parse_address,
        metavar="ADDRESS:PORT",
        help="Address and port to listen on (e.g. 127.0.0.1:8080, [::]:8080)"
    )

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 127.0.0.1 or $HTTP_HOST)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080 or $HTTP_PORT)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Maximum worker threads (default: 16 or $HTTP_WORKERS)"
    )

    parser.add_argument(
        "--directory", "-d",
        help="Directory to serve (default: current directory)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO or $HTTP_LOG_LEVEL)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (default: text or $HTTP_LOG_FORMAT)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}"
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Environment defaults, overridden by whatever was given on the command line."""
    config = ServerConfig.from_env()

    if args.address:
        config.host, config.port = args.address
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, args.workers)
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
        server = StaticServer(config)
    except ValueError as e:
        parser.error(str(e))

    if args.directory:
        try:
            os.chdir(args.directory)
        except OSError as e:
            parser.error(f"cannot serve {args.directory!r}: {e.strerror or e}")

    try:
        server.run()
    except BindError as e:
        print(f"staticserver: {e.strerror or e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
