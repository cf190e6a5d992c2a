"""
=============================================================================
BUFFERED LINE READER
=============================================================================

The foundation both parsing stages build on. Turns a raw byte stream
(a socket, or anything with a recv-like "give me up to N bytes" call)
into two simple operations:

    read_line()     → next line without its terminator, or None
    read_exact(n)   → exactly n bytes, or None

=============================================================================
WHY BUFFER?
=============================================================================

TCP is a byte stream. One recv() might return half a line, three lines,
or a whole request plus the start of the next one:

    recv() → b"GET /echo/hi HTTP/1.1\\r\\nHost: lo"
    recv() → b"calhost\\r\\n\\r\\nGET / HTTP/1.1\\r\\n\\r\\n"

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         LineReader._buffer                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /echo/hi HTTP/1.1\\r\\nHost: localhost\\r\\n\\r\\nGET / HTTP...     │
    │   ──────────┬────────────── ────────┬─────── ─┬── ──────┬─────      │
    │             │                       │         │         │           │
    │       read_line()            read_line()  read_line()   stays for   │
    │                                          ("" = end of   the NEXT    │
    │                                            headers)     request     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Reading byte-by-byte would cost one system call per byte. Instead we
pull buffer_size bytes at a time and serve lines out of memory. The
leftover bytes are what make keep-alive work: they belong to the next
request on the same connection, so ONE reader must live as long as the
connection does.

=============================================================================
FAILURE MODEL
=============================================================================

No exceptions escape for I/O problems. Any OSError from the underlying
read (connection reset, timeout, closed socket) is remembered in
`self.error` and surfaces as None, exactly like a clean end-of-stream.
Callers that care about the difference (the request parser, for its
diagnostics) can look at `error`.

=============================================================================
"""

import logging
from typing import Callable, Optional


logger = logging.getLogger(__name__)


# A recv-style callable: takes a max byte count, returns b"" at end of stream.
ReadFunc = Callable[[int], bytes]


class LineTooLongError(Exception):
    """Raised when a line exceeds the reader's max_line_size."""


class LineReader:
    """
    Buffered reader yielding LF/CRLF-terminated lines and exact byte slices.

    Usage:
        reader = LineReader(sock.recv)
        start_line = reader.read_line()     # "GET / HTTP/1.1"
        body = reader.read_exact(42)        # b"..."

    Attributes:
        eof: True once the underlying stream returned b"" or failed.
        error: The OSError that ended the stream, if any.
    """

    def __init__(
        self,
        read: ReadFunc,
        buffer_size: int = 8192,
        max_line_size: int = 65536,
    ):
        """
        Args:
            read: Function returning up to N bytes (socket.recv, BytesIO.read).
            buffer_size: Bytes requested per underlying read.
            max_line_size: Longest line (terminator included) read_line()
                           will accept before raising LineTooLongError.
        """
        self._read = read
        self.buffer_size = buffer_size
        self.max_line_size = max_line_size

        self._buffer = bytearray()
        self.eof = False
        self.error: Optional[OSError] = None

    @property
    def buffered(self) -> int:
        """Number of bytes read from the stream but not yet consumed."""
        return len(self._buffer)

    def _fill(self) -> bool:
        """
        Pull one chunk from the stream into the buffer.

        Returns:
            True if at least one byte was added, False at end of stream.
        """
        if self.eof:
            return False

        try:
            chunk = self._read(self.buffer_size)
        except OSError as e:
            # Reset by peer, timeout, socket closed under us...
            # All of them end this stream; none of them are the caller's crash.
            logger.debug(f"Read failed: {e}")
            self.error = e
            self.eof = True
            return False

        if not chunk:
            self.eof = True
            return False

        self._buffer += chunk
        return True

    def read_line(self) -> Optional[str]:
        """
        Read the next line, with its CRLF or LF terminator stripped.

        A line is only returned once its terminator has arrived. If the
        stream ends first (even with a partial line buffered), the result
        is None.

        Returns:
            The decoded UTF-8 line, or None.

        Raises:
            LineTooLongError: If no terminator shows up within max_line_size bytes.
            UnicodeDecodeError: If the line is not valid UTF-8. The line is
                                consumed either way.
        """
        scan_from = 0
        while True:
            newline = self._buffer.find(b"\n", scan_from)
            if newline != -1:
                break

            if len(self._buffer) > self.max_line_size:
                raise LineTooLongError(
                    f"Line exceeds {self.max_line_size} bytes"
                )

            # Only the freshly appended bytes can contain the newline
            scan_from = len(self._buffer)
            if not self._fill():
                return None

        if newline + 1 > self.max_line_size:
            raise LineTooLongError(f"Line exceeds {self.max_line_size} bytes")

        raw = bytes(self._buffer[:newline])
        del self._buffer[:newline + 1]

        if raw.endswith(b"\r"):
            raw = raw[:-1]

        return raw.decode("utf-8")

    def read_exact(self, n: int) -> Optional[bytes]:
        """
        Read exactly n bytes.

        Bytes already buffered by read_line() are used first; the rest is
        pulled from the stream.

        Args:
            n: Number of bytes wanted (0 returns b"" without touching the stream).

        Returns:
            Exactly n bytes, or None if the stream ended before n arrived.
        """
        if n < 0:
            raise ValueError(f"Cannot read a negative number of bytes: {n}")

        while len(self._buffer) < n:
            if not self._fill():
                return None

        data = bytes(self._buffer[:n])
        del self._buffer[:n]
        return data
