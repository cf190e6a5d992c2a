"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: the buffered reader requests are
parsed from, the write path responses go out on, and a clean close.

=============================================================================
ONE READER PER CONNECTION
=============================================================================

With keep-alive, one TCP connection carries many requests back to back.
A single recv() can return the tail of request N together with the start
of request N+1. Those extra bytes live in the LineReader's buffer, so the
reader has to be created ONCE per connection and reused for every
request on it. A fresh reader per request would silently drop them.

    ┌─────────────────────────────────────────────────────────────────┐
    │                    With Keep-Alive (HTTP/1.1)                    │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   TCP Connect                                                    │
    │       │                                                          │
    │       ├── Request 1: parse → dispatch → send                     │
    │       ├── Request 2: parse → dispatch → send                     │
    │       ├── Request 3: parse → dispatch → send (Connection: close) │
    │       │                                                          │
    │   TCP Close                                                      │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

                  parse ok, send ok,
                  no "Connection: close"
                 ┌───────────────────┐
                 │                   │
                 ▼                   │
        AWAITING_REQUEST ────────────┘
                 │
                 │  parse failed / peer closed /
                 │  send failed / "Connection: close"
                 ▼
              CLOSED   (terminal: socket released, thread exits)

There are no read timeouts. A peer that connects and never sends
anything keeps its connection, and its thread, until it goes away.

=============================================================================
"""

import socket
import logging
from enum import Enum
from dataclasses import dataclass, field
import uuid

from .line_reader import LineReader


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    AWAITING_REQUEST = "awaiting_request"   # Ready to read the next request
    CLOSED = "closed"                       # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier for log lines.
        state: Current connection state.
        requests_handled: Responses sent on this connection so far.
        reader: Buffered reader over the socket, shared by every request.
    """

    # Required parameters
    socket: socket.socket
    address: tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.AWAITING_REQUEST
    requests_handled: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192
    max_line_size: int = 65536

    reader: LineReader = field(init=False, repr=False)

    def __post_init__(self):
        # Plain blocking socket: reads wait as long as the peer takes
        self.socket.settimeout(None)
        self.reader = LineReader(
            self.socket.recv,
            buffer_size=self.buffer_size,
            max_line_size=self.max_line_size,
        )

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1]

    # =========================================================================
    # WRITING: Send response data to the client
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes to the client.

        Uses sendall(): a plain send() may write only part of the data.

        Returns:
            True if every byte was handed to the OS, False if the peer is gone.
        """
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

        self.requests_handled += 1
        return True

    # =========================================================================
    # CLOSING: Properly terminate the connection
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN, the client sees end-of-response.
        2. Drain briefly: unread client bytes left in the kernel would make
           close() send a RST, which can destroy our last response in flight.
        3. close(): release the file descriptor.

        Safe to call more than once.
        """
        if self.state is ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Timeout or reset, we're closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    # =========================================================================
    # CONTEXT MANAGER: For use with 'with' statement
    # =========================================================================

    def __enter__(self):
        """
        Allows using Connection with 'with' for automatic cleanup:

            with conn:
                request = parser.parse(conn.reader)
                conn.send_response(response.to_bytes())
            # Connection closed here, even on exceptions
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
