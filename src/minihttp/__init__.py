"""
=============================================================================
MINIHTTP - A Minimal HTTP/1.1 Server on Raw Sockets
=============================================================================

A small HTTP/1.1 server: raw TCP sockets, one thread per connection,
keep-alive, and a handful of built-in routes.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       MINIHTTP ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. CORE (minihttp.core)                                           │
    │      - SocketServer: bind, listen, accept loop                      │
    │      - Connection: one client socket + its LineReader               │
    │      - LineReader: buffered lines and exact-length reads            │
    │                                                                      │
    │   2. HTTP (minihttp.http)                                           │
    │      - RequestParser: bytes → HTTPRequest                           │
    │      - HTTPResponse: HTTPResponse → bytes                           │
    │      - Router: first path segment + method → handler               │
    │                                                                      │
    │   3. HANDLERS (minihttp.handlers)                                   │
    │      - /, /echo/<text>, /user-agent                                 │
    │      - GET/POST /files/<name>                                       │
    │                                                                      │
    │   4. SERVER (minihttp.server)                                       │
    │      - HTTPServer: thread per connection, request loop              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    $ python -m minihttp --directory /tmp/files
    $ curl -v http://localhost:4221/echo/hello

    Or from Python:

        from minihttp import HTTPServer, ServerConfig

        server = HTTPServer(ServerConfig(directory="/tmp/files"))
        server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_router
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_router", "__version__"]
