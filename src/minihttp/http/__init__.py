"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Turns bytes from TCP into structured HTTP messages and back.

    Request  (client → server)          Response (server → client)

    GET /echo/abc HTTP/1.1\\r\\n          HTTP/1.1 200 OK\\r\\n
    Host: localhost:4221\\r\\n            Content-Type: text/plain\\r\\n
    \\r\\n                                Content-Length: 3\\r\\n
                                        \\r\\n
                                        abc

Key points:
- Lines end with CRLF (\\r\\n); a bare \\n is accepted on input
- Headers and body separated by an empty line
- Header names are case-insensitive ("User-Agent" = "user-agent")
- Body length specified by Content-Length, nothing else
"""

from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    ParseErrorKind,
    parse_request,
    split_path,
)
from .response import (
    HTTPResponse,
    # Convenience functions for common responses
    ok,                  # 200 OK
    created,             # 201 Created
    bad_request,         # 400 Bad Request
    not_found,           # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    internal_error,      # 500 Internal Server Error
)
from .router import Router, Route, Handler
from .status_codes import HTTPStatus

# Public API - what you get when you do:
# from minihttp.http import *
__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "ParseErrorKind",
    "parse_request",
    "split_path",

    # Responses
    "HTTPResponse",
    "ok",
    "created",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "Handler",

    # Status codes
    "HTTPStatus",
]
