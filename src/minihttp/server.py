"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

Ties the pieces together: accept loop, one thread per connection, the
per-connection request loop, and the router.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP SERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        │  (Supervisor)   │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │ Thread per   │    │    Router    │        │
    │    │ (accept loop)│    │ connection   │    │ (dispatch)   │        │
    │    └──────┬───────┘    └──────┬───────┘    └──────┬───────┘        │
    │           │                   │                   │                 │
    │           ▼                   ▼                   ▼                 │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │  Connection  │    │RequestParser │    │   Handlers   │        │
    │    │ + LineReader │    │              │    │ echo, files… │        │
    │    └──────────────┘    └──────────────┘    └──────────────┘        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. CLIENT CONNECTS
       └── SocketServer accepts, wraps the socket in a Connection
    2. SPAWN
       └── A new daemon thread owns the connection from here on
    3. PARSE
       └── RequestParser reads one request through the connection's reader
           (failure → log, close, no response)
    4. DISPATCH
       └── Router picks a handler by path[0] and method
    5. SEND
       └── HTTPResponse.to_bytes() → sendall()
    6. KEEP-ALIVE OR CLOSE
       └── "Connection: close" → close; anything else → back to 3

Within a connection requests are strictly sequential: request N+1 is not
read before response N has been sent. Across connections there is no
ordering at all.

=============================================================================
CONCURRENCY MODEL
=============================================================================

Unbounded thread-per-connection: no pool, no queue, no connection limit.
The only state shared by threads is the configuration and the router
(with its handlers' base directory), all of which are read-only after
startup.

There are no timeouts either. A client that connects and stays silent
holds one thread until it disconnects; other clients are not affected.

=============================================================================
"""

import logging
import threading
from pathlib import Path
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState
from .http import (
    HTTPRequest, RequestParser, HTTPParseError, ParseErrorKind,
    HTTPResponse, Router, internal_error,
)
from .handlers import FileHandler, root, echo, user_agent


logger = logging.getLogger(__name__)


def create_router(directory: str = ".") -> Router:
    """
    Build the router with the server's routes.

        /              ANY   → 200, empty body
        /echo/<text>   ANY   → 200, <text>
        /user-agent    ANY   → 200, User-Agent header or "Unknown"
        /files/<name>  GET   → 200, file bytes
        /files/<name>  POST  → 201, body written to file
        anything else        → 404

    Args:
        directory: Base directory for /files.
    """
    router = Router()
    files = FileHandler(directory)

    router.add_route("", root)
    router.add_route("echo", echo)
    router.add_route("user-agent", user_agent)
    router.add_route("files", files.read, method="GET")
    router.add_route("files", files.write, method="POST")

    return router


class HTTPServer:
    """
    Thread-per-connection HTTP/1.1 server.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(directory="/tmp/files"))
        server.run()            # Blocks until Ctrl+C / shutdown()

        # Or from another thread (tests):
        threading.Thread(target=server.run, daemon=True).start()
        server.wait_until_ready(5)
        host, port = server.server_address
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        router: Optional[Router] = None,
    ):
        """
        Args:
            config: Server configuration. Defaults if not provided.
            router: Custom router. Defaults to create_router(config.directory).

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(max_body_size=self.config.max_body_size)
        self._router = router or create_router(self.config.directory)

    @property
    def router(self) -> Router:
        return self._router

    @property
    def server_address(self) -> tuple[str, int]:
        """The (host, port) being listened on (real port once bound)."""
        return self._socket_server.address

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, configure_logging: bool = True, show_banner: bool = True):
        """
        Start the server (blocking).

        Args:
            configure_logging: Set up the root logger from config.log_level.
                               Embedders with their own logging pass False.
            show_banner: Print the startup banner once the socket is bound.
        """
        if configure_logging:
            self._setup_logging()

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}, "
            f"serving files from {Path(self.config.directory).resolve()}"
        )

        try:
            self._socket_server.start(
                self._handle_connection,
                on_ready=self.print_startup_banner if show_banner else None,
            )
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """
        Stop accepting new connections and let run() return.

        Connection threads are daemons and are not waited for: a keep-alive
        client may still finish its current exchange.
        """
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def print_startup_banner(self):
        """Print server startup information."""
        host, port = self.server_address
        print()
        print(f"  {self.config.server_name}")
        print(f"  Listening on http://{host}:{port}")
        print(f"  Files from   {Path(self.config.directory).resolve()}")
        print("  Press Ctrl+C to stop")

        self._router.print_routes()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = self.config.log_level_number

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("minihttp").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Give the connection its own thread (called by the accept loop).

        Returns immediately so the accept loop can take the next client.
        """
        logger.info(f"[{conn.id}] New connection from {conn.client_ip}:{conn.client_port}")

        thread = threading.Thread(
            target=self.serve_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        thread.start()

    def serve_connection(self, conn: Connection):
        """
        Run the request loop for one connection until it closes.

        =====================================================================
        CONNECTION PROCESSING LOOP
        =====================================================================

            AWAITING_REQUEST:
                parse   ── fail ──────────────────────────► CLOSED
                dispatch
                send    ── fail ──────────────────────────► CLOSED
                "Connection: close"? ── yes ──────────────► CLOSED
                └── no: loop

        Nothing raised in here escapes the thread: one broken connection
        never affects another, or the accept loop.

        =====================================================================
        """
        with conn:  # Context manager ensures the socket is released
            while conn.state is ConnectionState.AWAITING_REQUEST:
                try:
                    request = self._parser.parse(conn.reader, conn.address)
                except HTTPParseError as e:
                    self._log_parse_failure(conn, e)
                    break

                logger.debug(f"[{conn.id}] Request: {request!r}")

                response = self.handle_request(request)
                logger.debug(f"[{conn.id}] Response: {response!r}")
                self._log_access(conn, request, response)

                if not conn.send_response(response.to_bytes()):
                    break

                if request.wants_close:
                    break

    def handle_request(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request, turning a handler crash into a 500.

        Handlers report their own expected failures (missing files and so
        on) as responses; an exception here is a bug, so it gets a
        traceback in the log.
        """
        try:
            return self._router.dispatch(request)
        except Exception:
            logger.exception(f"Handler error for {request.method} {request.target}")
            return internal_error()

    def _log_parse_failure(self, conn: Connection, error: HTTPParseError):
        if error.kind is ParseErrorKind.CONNECTION_CLOSED:
            # Normal end of a keep-alive connection
            logger.debug(f"[{conn.id}] Client closed the connection")
        else:
            logger.warning(f"[{conn.id}] Malformed request ({error.kind.value}): {error}")

    def _log_access(self, conn: Connection, request: HTTPRequest, response: HTTPResponse):
        logger.info(
            f'[{conn.id}] {conn.client_ip} "{request.method} {request.target} {request.version}" '
            f"{int(response.status)} {len(response.body)}"
        )
