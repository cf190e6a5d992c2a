"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m minihttp --directory /tmp/files                 │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── MINIHTTP_DIRECTORY=/tmp/files python -m minihttp          │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The whole configuration is read-only once the server starts. Every
connection thread reads it; nobody writes it, so no locks are needed.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from . import __version__


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size

    HTTP SETTINGS
    - max_line_size, max_body_size

    FILES
    - directory

    LOGGING / IDENTITY
    - log_level, server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to. Loopback by default: the server is
    unauthenticated plaintext.
    """

    port: int = 4221
    """
    The port number to listen on. 0 lets the OS pick a free port
    (read it back from HTTPServer.server_address).
    """

    backlog: int = 128
    """Maximum number of connections queued by the OS before accept()."""

    buffer_size: int = 8192
    """Bytes requested per recv() by each connection's LineReader."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_line_size: int = 64 * 1024
    """
    Longest start/header line accepted. A client streaming bytes without
    a line break fails its request instead of growing the buffer forever.
    """

    max_body_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest Content-Length accepted. Bigger requests fail to parse."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: str = "."
    """Base directory for GET/POST /files/<name>. Default: working directory."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    server_name: str = f"minihttp/{__version__}"
    """Shown in the startup banner. Not sent in responses."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        MINIHTTP_HOST       Server host (default: 127.0.0.1)
        MINIHTTP_PORT       Server port (default: 4221)
        MINIHTTP_DIRECTORY  Base directory for /files (default: .)
        MINIHTTP_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            host=os.getenv("MINIHTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("MINIHTTP_PORT", "4221")),
            directory=os.getenv("MINIHTTP_DIRECTORY", "."),
            log_level=os.getenv("MINIHTTP_LOG_LEVEL", "INFO"),
        )

    @property
    def log_level_number(self) -> int:
        """The logging module's numeric level for log_level."""
        return getattr(logging, self.log_level.upper())

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup, so a bad port or a missing directory fails
        immediately instead of on the first request.

        Raises:
            ValueError: Describing the first invalid value.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.max_line_size < 1:
            raise ValueError("max_line_size must be >= 1")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if not Path(self.directory).is_dir():
            raise ValueError(f"Directory does not exist: {self.directory}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {self.log_level}. "
                f"Must be one of {', '.join(LOG_LEVELS)}."
            )
