"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one HTTP/1.1 request off a connection, through a LineReader, and
turns it into a structured HTTPRequest.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ START LINE ───────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    POST /files/note.txt HTTP/1.1\r\n                           │ │
    │  │    ─┬── ───────┬─────── ────┬───                               │ │
    │  │     │          │            │                                   │ │
    │  │   Method   Request-target  Version                              │ │
    │  │                │                                                │ │
    │  │                └──► path = ["files", "note.txt"]               │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    Host: localhost:4221\r\n                                    │ │
    │  │    User-Agent: curl/8.4.0\r\n                                  │ │
    │  │    Content-Length: 2\r\n       ← How many body bytes follow    │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n                        ← End of headers                │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY ─────────────────────────────────────────────────────────┐ │
    │  │    hi                          ← Exactly Content-Length bytes  │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSING RULES
=============================================================================

1. START LINE: split on whitespace. Fewer than three tokens fails the
   whole request. The method and version are NOT validated: any token
   is accepted ("BREW /pot HTCPCP/1.0" parses fine, routing decides).

2. PATH: the request-target is split on "/" and empty segments dropped.

       "/"                → []
       "//"               → []
       "/echo/abc"        → ["echo", "abc"]
       "//echo///abc/"    → ["echo", "abc"]

   No URL decoding, no query string handling: "/echo/a%20b?x=1" gives
   ["echo", "a%20b?x=1"].

3. HEADERS: one per line until an empty line. A header line must
   contain the exact separator ": " (colon, space) once trailing
   whitespace is stripped. Lines without it are dropped silently. Names are stored lower-cased so lookups are
   case-insensitive; a repeated name keeps its LAST value.

4. BODY: Content-Length, if it is a non-negative integer, says how many
   bytes to read. Missing or garbage Content-Length means no body.
   Reading fewer bytes than declared fails the request: a request is
   never returned with a partial body.

5. ENCODING: the start line and header lines must be valid UTF-8. A line
   that is not fails the request; nothing is replaced or guessed, so
   /echo never answers with text the client did not send.

=============================================================================
FAILURE MODEL
=============================================================================

Externally a failure is one thing: "no request" (parse_request() returns
None and the connection is closed without a response). Internally each
failure carries a ParseErrorKind, so logs and tests can tell a peer that
simply hung up from one that sent half a body.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
import logging

from ..core.line_reader import LineReader, LineTooLongError


logger = logging.getLogger(__name__)


class ParseErrorKind(Enum):
    """Why a request could not be read."""
    CONNECTION_CLOSED = "connection closed"          # Stream ended before any start line
    INCOMPLETE_START_LINE = "incomplete start line"  # Fewer than 3 tokens
    LINE_TOO_LONG = "line too long"                  # No terminator within max_line_size
    TRUNCATED_HEADERS = "truncated headers"          # Stream ended before the empty line
    BODY_TOO_LARGE = "body too large"                # Content-Length above max_body_size
    TRUNCATED_BODY = "truncated body"                # Fewer body bytes than declared
    IO_ERROR = "i/o error"                           # Underlying read raised
    INVALID_ENCODING = "invalid encoding"            # Start or header line not UTF-8


class HTTPParseError(Exception):
    """
    Raised when a request cannot be read off the stream.

    Carries a ParseErrorKind so callers can log (and tests can assert)
    the specific reason, while the connection loop treats every kind
    the same way: close without responding.
    """

    def __init__(self, kind: ParseErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind


@dataclass
class HTTPRequest:
    """
    Represents one parsed HTTP request.

    Attributes:
        method:         Request method token, as sent ("GET", "POST", ...)
        path:           Non-empty path segments of the request-target
        version:        Version token, as sent ("HTTP/1.1")
        headers:        Header values keyed by LOWER-CASED name
        body:           Exactly Content-Length bytes (b"" if none)
        target:         The raw request-target, kept for access logs
        client_address: (ip, port) of the peer, if known

    Value object: created fresh for each request and dropped once its
    response has been sent.
    """

    method: str
    path: List[str] = field(default_factory=list)
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    target: str = "/"
    client_address: tuple[str, int] = ("", 0)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a header value (case-insensitive lookup).

        Example:
            request.get_header("User-Agent")
            request.get_header("user-agent")   # same thing
        """
        return self.headers.get(name.lower(), default)

    @property
    def content_length(self) -> int:
        """Declared body length, 0 if missing or not a non-negative integer."""
        return parse_content_length(self.headers.get("content-length"))

    @property
    def user_agent(self) -> Optional[str]:
        """The User-Agent header, or None if the client didn't send one."""
        return self.get_header("User-Agent")

    @property
    def wants_close(self) -> bool:
        """
        True if the client asked to close the connection after this request.

        Only the exact value "close" counts. "Close" or "close, TE" keep
        the connection open.
        """
        return self.get_header("Connection") == "close"


def split_path(target: str) -> List[str]:
    """
    Split a request-target into its non-empty "/"-separated segments.

    Leading, trailing and repeated slashes all collapse, so no segment is
    ever the empty string.
    """
    return [segment for segment in target.split("/") if segment]


def parse_content_length(value: Optional[str]) -> int:
    """
    Interpret a Content-Length header value.

    ASCII digits with at most one leading "+": "12" → 12 and "+3" → 3,
    while "-1", "++3", " 7", "1_000" and "abc" all mean "no body" (0).
    """
    digits = value[1:] if value and value.startswith("+") else value
    if digits and digits.isascii() and digits.isdigit():
        return int(digits)
    return 0


class RequestParser:
    """
    Reads HTTPRequest objects from a LineReader.

    ==========================================================================
    PARSER FLOW
    ==========================================================================

        LineReader
            │
            ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  1. read_line() → start line                                      │
        │     │  None?          → CONNECTION_CLOSED / IO_ERROR              │
        │     │  < 3 tokens?    → INCOMPLETE_START_LINE                     │
        │     ▼                                                             │
        │  2. split_path(target)                                            │
        │     ▼                                                             │
        │  3. read_line() until ""  → headers                              │
        │     │  None?          → TRUNCATED_HEADERS / IO_ERROR              │
        │     ▼                                                             │
        │  4. Content-Length   → n (0 if absent/invalid)                    │
        │     │  n > max?       → BODY_TOO_LARGE                            │
        │     ▼                                                             │
        │  5. read_exact(n)    → body                                       │
        │     │  None?          → TRUNCATED_BODY / IO_ERROR                 │
        └───────────────────────────────────────────────────────────────────┘
            │
            ▼
        HTTPRequest

    The parser holds no per-connection state; all buffering lives in the
    LineReader. One parser can serve every connection of the server.

    ==========================================================================
    """

    def __init__(self, max_body_size: int = 10 * 1024 * 1024):
        """
        Args:
            max_body_size: Largest Content-Length accepted. Anything bigger
                           fails the request instead of being buffered.
        """
        self.max_body_size = max_body_size

    def parse(
        self,
        reader: LineReader,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Read exactly one request from the reader.

        Args:
            reader: The connection's LineReader.
            client_address: Peer address, copied onto the request.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed or the stream ends early.
        """
        # ---------------------------------------------------------------------
        # START LINE: METHOD SP TARGET SP VERSION
        # ---------------------------------------------------------------------
        start_line = self._read_line(reader, ParseErrorKind.CONNECTION_CLOSED)

        tokens = start_line.split()
        if len(tokens) < 3:
            raise HTTPParseError(
                ParseErrorKind.INCOMPLETE_START_LINE,
                f"Invalid start line: {start_line!r}",
            )
        method, target, version = tokens[:3]

        # ---------------------------------------------------------------------
        # HEADERS: "Name: Value" lines until the empty line
        # ---------------------------------------------------------------------
        headers: Dict[str, str] = {}
        while True:
            # Trailing whitespace is dropped first, so a whitespace-only line
            # also ends the headers and "X-Empty: " has no separator left.
            line = self._read_line(reader, ParseErrorKind.TRUNCATED_HEADERS).rstrip()
            if not line:
                break  # End of headers

            name, sep, value = line.partition(": ")
            if not sep:
                continue  # Not a header line, drop it

            headers[name.lower()] = value

        # ---------------------------------------------------------------------
        # BODY: exactly Content-Length bytes
        # ---------------------------------------------------------------------
        content_length = parse_content_length(headers.get("content-length"))
        if content_length > self.max_body_size:
            raise HTTPParseError(
                ParseErrorKind.BODY_TOO_LARGE,
                f"Content-Length {content_length} exceeds {self.max_body_size}",
            )

        body = reader.read_exact(content_length)
        if body is None:
            raise self._stream_error(
                reader,
                ParseErrorKind.TRUNCATED_BODY,
                f"Expected {content_length} body bytes",
            )

        return HTTPRequest(
            method=method,
            path=split_path(target),
            version=version,
            headers=headers,
            body=body,
            target=target,
            client_address=client_address,
        )

    def _read_line(self, reader: LineReader, kind: ParseErrorKind) -> str:
        """Read a line, raising HTTPParseError(kind) if the stream ends."""
        try:
            line = reader.read_line()
        except LineTooLongError as e:
            raise HTTPParseError(ParseErrorKind.LINE_TOO_LONG, str(e))
        except UnicodeDecodeError as e:
            raise HTTPParseError(ParseErrorKind.INVALID_ENCODING, f"Line is not UTF-8: {e.reason}")

        if line is None:
            raise self._stream_error(reader, kind)
        return line

    @staticmethod
    def _stream_error(
        reader: LineReader,
        kind: ParseErrorKind,
        message: str = "",
    ) -> HTTPParseError:
        """Pick IO_ERROR over `kind` when the stream ended because a read failed."""
        if reader.error is not None:
            return HTTPParseError(ParseErrorKind.IO_ERROR, str(reader.error))
        return HTTPParseError(kind, message)


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    reader: LineReader,
    client_address: tuple[str, int] = ("", 0),
    max_body_size: int = 10 * 1024 * 1024,
) -> Optional[HTTPRequest]:
    """
    Read one request, or None if anything goes wrong.

    This is the undifferentiated contract: the caller learns only that
    there is no request. Use RequestParser.parse() directly to get the
    ParseErrorKind.
    """
    try:
        return RequestParser(max_body_size=max_body_size).parse(reader, client_address)
    except HTTPParseError as e:
        logger.debug(f"Request parse failed ({e.kind.value}): {e}")
        return None
