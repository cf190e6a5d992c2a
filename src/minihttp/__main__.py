"""
=============================================================================
MINIHTTP CLI ENTRY POINT
=============================================================================

This module provides the command-line interface for running the server.

=============================================================================
USAGE
=============================================================================

    # Run with defaults (127.0.0.1:4221, files from the current directory)
    python -m minihttp

    # Serve and store files in another directory
    python -m minihttp --directory /tmp/files

    # Custom port, listen on all interfaces
    python -m minihttp --host 0.0.0.0 --port 8080

    # See every request and response
    python -m minihttp --log-level DEBUG

=============================================================================
CONFIGURATION SOURCES
=============================================================================

1. Command-line arguments (highest priority)
2. MINIHTTP_* environment variables (see ServerConfig.from_env)
3. ServerConfig defaults

Exit codes:
    0   Server stopped normally
    1   Server failed while running (e.g. port already in use)
    2   Invalid arguments or configuration

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .server import HTTPServer
from .config import ServerConfig, LOG_LEVELS


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Every option defaults to None so that only arguments actually given
    override the environment.
    """
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.1 server with echo, user-agent and file routes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttp                           # Run with defaults
  python -m minihttp --directory /tmp/files    # Base directory for /files
  python -m minihttp --port 8080               # Custom port
  python -m minihttp --host 0.0.0.0            # Listen on all interfaces
  python -m minihttp -l DEBUG                  # Log requests and responses
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 4221, 0 picks a free port)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "--dir",
        dest="directory",
        default=None,
        help="Base directory for GET/POST /files/<name> (default: current directory)"
    )

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """
    Merge parsed arguments over the environment.

    Raises:
        ValueError: If an environment variable holds a bad value
                    (e.g. MINIHTTP_PORT=abc).
    """
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.directory is not None:
        config.directory = args.directory
    if args.log_level is not None:
        config.log_level = args.log_level

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Arguments without the program name (default: sys.argv[1:]).

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)

    # =========================================================================
    # CREATE CONFIGURATION AND SERVER
    # =========================================================================
    # HTTPServer validates the config, so a missing directory or a bad
    # port is reported here, before anything is bound.

    try:
        server = HTTPServer(config_from_args(args))
    except ValueError as e:
        print(f"minihttp: error: {e}", file=sys.stderr)
        return 2

    # =========================================================================
    # RUN SERVER
    # =========================================================================
    # This blocks until Ctrl+C or SIGTERM

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


# =============================================================================
# ENTRY POINT
# =============================================================================
# This allows running: python -m minihttp

if __name__ == "__main__":
    sys.exit(main())
