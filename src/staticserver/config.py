"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m staticserver 0.0.0.0:3000                        │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 python -m staticserver                      │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Values are checked once, at startup, by validate(). A bad value stops the
server before it binds anything.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    NETWORK
    - host, port, backlog

    REQUEST READING
    - buffer_size (B), max_read_attempts (N), read_timeout, write_timeout

    THREADING
    - min_workers, max_workers, queue_size

    LOGGING
    - log_level, log_format
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    Address to bind to. Hostnames and IPv6 literals are accepted.
    An empty string binds every interface.
    """

    port: int = 8080
    """Port to listen on. 0 asks the kernel for a free one."""

    backlog: int = 500
    """Pending connections the kernel may queue before refusing more."""

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST READING
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 8192
    """Maximum size of a request header block, in bytes."""

    max_read_attempts: int = 16
    """Reads allowed before a still-incomplete request is rejected."""

    read_timeout: Optional[float] = 5.0
    """Deadline for each read from a client, in seconds."""

    write_timeout: Optional[float] = 5.0
    """Deadline for each write to a client, in seconds."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    queue_size: int = 100
    """Connections allowed to wait for a worker. Beyond this: 503."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """'text' for humans, 'json' for log aggregators."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            HTTP_HOST          Bind address (default: 127.0.0.1)
            HTTP_PORT          Port (default: 8080)
            HTTP_WORKERS       Max worker threads (default: 16)
            HTTP_BUFFER_SIZE   Request buffer size (default: 8192)
            HTTP_READ_TIMEOUT  Read deadline in seconds (default: 5)
            HTTP_LOG_LEVEL     Logging level (default: INFO)
            HTTP_LOG_FORMAT    text or json (default: text)

        Raises:
            ValueError: A numeric variable does not parse.
        """
        max_workers = int(os.getenv("HTTP_WORKERS", "16"))

        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            buffer_size=int(os.getenv("HTTP_BUFFER_SIZE", "8192")),
            read_timeout=float(os.getenv("HTTP_READ_TIMEOUT", "5")),
            min_workers=min(cls.min_workers, max_workers),
            max_workers=max_workers,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: Describing the first bad value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.max_read_attempts < 1:
            raise ValueError("max_read_attempts must be >= 1")

        for name in ("read_timeout", "write_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be > 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
