"""
=============================================================================
HTTP RESPONSE
=============================================================================

Holds a response under construction and serializes it to the exact
bytes written on the socket.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ STATUS LINE ──────────────────────────────────────────────────┐ │
    │  │    HTTP/1.1 200 OK\r\n                                         │ │
    │  │    ────┬─── ───┬──                                             │ │
    │  │        │       └── status_line ("200 OK")                      │ │
    │  │        └────────── always HTTP/1.1                             │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS (one per line, dict order) ───────────────────────────┐ │
    │  │    Content-Type: text/plain\r\n      ← seeded by constructor   │ │
    │  │    Content-Length: 5\r\n             ← seeded by constructor   │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY ─────────────────────────────────────────────────────────┐ │
    │  │    hello                             ← bytes, verbatim         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONTENT-LENGTH OWNERSHIP
=============================================================================

The constructor computes Content-Length from the body it is given.
Handlers may overwrite any header afterwards (Content-Type included).
Changing the body through set_body() refreshes Content-Length; assigning
`response.body` directly does NOT, and to_bytes() writes the headers as
they are.

The serializer adds nothing of its own (no Date, no Server): the same
response always produces the same bytes.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus


Body = Union[str, bytes]


def _to_bytes(body: Body) -> bytes:
    if isinstance(body, str):
        return body.encode("utf-8")
    return body


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns          to_bytes()              Socket sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes

        HTTPResponse(            b"HTTP/1.1 200 OK\r\n   conn.send_response(
          HTTPStatus.OK,           Content-Type: ...\r\n     response_bytes
          "hello",                 \r\n                    )
        )                          hello"

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.body = _to_bytes(self.body)

        # Seed defaults; explicitly passed headers win
        seeded = {
            "Content-Type": "text/plain",
            "Content-Length": str(len(self.body)),
        }
        seeded.update(self.headers)
        self.headers = seeded

    @property
    def status_line(self) -> str:
        """Status code plus reason phrase, e.g. "200 OK"."""
        return f"{int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set (or overwrite) a response header.

        Returns self for method chaining:
            response.set_header("Content-Type", "application/octet-stream")
        """
        self.headers[name] = value
        return self

    def set_content_type(self, content_type: str) -> "HTTPResponse":
        """Set the Content-Type header."""
        return self.set_header("Content-Type", content_type)

    def set_body(self, body: Body) -> "HTTPResponse":
        """Replace the body and refresh Content-Length to match it."""
        self.body = _to_bytes(body)
        self.headers["Content-Length"] = str(len(self.body))
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize the response for socket.sendall().

            HTTP/1.1 <status_line>\r\n
            <name>: <value>\r\n        (one per header)
            \r\n
            <body>
        """
        lines = [f"HTTP/1.1 {self.status_line}"]

        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")

        # Empty line separates headers from body
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the responses handlers actually produce:
#
#     return ok(request.path[1])
#     return bad_request(f"{type(e).__name__}: {e.strerror}")
#     return not_found()
#
# =============================================================================

def ok(body: Body = b"", content_type: Optional[str] = None) -> HTTPResponse:
    """Create a 200 OK response (text/plain unless content_type is given)."""
    response = HTTPResponse(HTTPStatus.OK, body)
    if content_type:
        response.set_content_type(content_type)
    return response


def created(body: Body = b"") -> HTTPResponse:
    """Create a 201 Created response."""
    return HTTPResponse(HTTPStatus.CREATED, body)


def bad_request(message: Body = b"") -> HTTPResponse:
    """
    Create a 400 Bad Request response.

    The message, if any, is the plain-text body: a human-readable
    description of what went wrong.
    """
    return HTTPResponse(HTTPStatus.BAD_REQUEST, message)


def not_found() -> HTTPResponse:
    """Create a 404 Not Found response with an empty body."""
    return HTTPResponse(HTTPStatus.NOT_FOUND)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """
    Create a 405 Method Not Allowed response.

    Includes the Allow header listing valid methods (RFC 7231); the body
    stays empty.
    """
    response = HTTPResponse(HTTPStatus.METHOD_NOT_ALLOWED)
    response.set_header("Allow", ", ".join(allowed_methods))
    return response


def internal_error() -> HTTPResponse:
    """Create a 500 Internal Server Error response with an empty body."""
    return HTTPResponse(HTTPStatus.INTERNAL_SERVER_ERROR)
