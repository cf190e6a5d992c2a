"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking layer: everything that touches a socket directly.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ──accept()──► Connection ──owns──► LineReader        │
    │   (listening socket)         (client socket)      (recv buffer)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

- SocketServer: Accept connections, hand each one to a callback
- Connection: One client socket, its reader, sending and closing
- LineReader: Buffered line / exact-length reads over any recv()

Nothing here knows about HTTP beyond "lines end with \\n".
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .line_reader import LineReader, LineTooLongError

__all__ = [
    "SocketServer",      # Listening socket and accept loop
    "Connection",        # Wrapper for a client socket
    "ConnectionState",   # AWAITING_REQUEST / CLOSED
    "LineReader",        # Buffered reader shared by every request on a connection
    "LineTooLongError",  # A line exceeded max_line_size
]
