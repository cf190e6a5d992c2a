"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can put on the wire, with their reason
phrases.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  Code  │ Where it comes from                                       │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  200   │ /, /echo/<text>, /user-agent, GET /files/<name>           │
    │  201   │ POST /files/<name> wrote the file                         │
    │  400   │ missing path segment, filesystem error, escaping path     │
    │  404   │ first path segment matches no route                       │
    │  405   │ /files with a method other than GET or POST               │
    │  500   │ a handler raised instead of returning a response          │
    └────────┴───────────────────────────────────────────────────────────┘

Using IntEnum means HTTPStatus.OK == 200 is True, so a status can be
compared with plain integers in tests and logs while still carrying its
phrase:

    >>> HTTPStatus.NOT_FOUND
    <HTTPStatus.NOT_FOUND: 404>
    >>> HTTPStatus.NOT_FOUND.phrase
    'Not Found'

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """HTTP status codes emitted by the server."""

    # 2xx Success
    OK = 200                        # Standard success response
    CREATED = 201                   # File written by POST /files/<name>

    # 4xx Client Error
    BAD_REQUEST = 400               # Missing segment or failed file operation
    NOT_FOUND = 404                 # No route for the first path segment
    METHOD_NOT_ALLOWED = 405        # Known route, unsupported method

    # 5xx Server Error
    INTERNAL_SERVER_ERROR = 500     # Handler crashed

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx (success) status code."""
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
