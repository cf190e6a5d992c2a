"""
pytest configuration and fixtures.
"""

import io
import socket
import threading
from typing import Callable, Dict, Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig
from minihttp.core import LineReader
from minihttp.http import Router


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /echo/hello HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b"hello, file"
    content_length = f"Content-Length: {len(body)}\r\n".encode()
    return (
        b"POST /files/note.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        + content_length
        + b"Connection: close\r\n"
        b"\r\n"
        + body
    )


@pytest.fixture
def make_reader() -> Callable[..., LineReader]:
    """Build a LineReader over in-memory bytes."""
    def _make(data: bytes, **kwargs) -> LineReader:
        return LineReader(io.BytesIO(data).read, **kwargs)
    return _make


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class RawClient:
    """
    Minimal HTTP client on a plain socket.

    Reads responses through a LineReader so several responses can be
    read back to back from one keep-alive connection.
    """

    def __init__(self, port: int, timeout: float = 5.0):
        self.sock = socket.create_connection(("127.0.0.1", port), timeout=timeout)
        self.reader = LineReader(self.sock.recv)

    def send(self, data: bytes):
        self.sock.sendall(data)

    def read_response(self) -> Tuple[str, Dict[str, str], bytes]:
        """Read one response: (status line, headers, body)."""
        status_line = self.reader.read_line()
        assert status_line is not None, "connection closed before a response"

        headers: Dict[str, str] = {}
        while True:
            line = self.reader.read_line()
            assert line is not None, "connection closed inside the headers"
            if not line:
                break
            name, _, value = line.partition(": ")
            headers[name] = value

        body = self.reader.read_exact(int(headers.get("Content-Length", "0")))
        assert body is not None, "connection closed inside the body"
        return status_line, headers, body

    def request(self, data: bytes) -> Tuple[str, Dict[str, str], bytes]:
        self.send(data)
        return self.read_response()

    def is_closed_by_server(self) -> bool:
        """True if the server closed its side (recv sees end of stream)."""
        return self.reader.read_exact(1) is None and self.reader.error is None

    def close(self):
        self.sock.close()


class ServerRunner:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.server_address[1]

    @property
    def directory(self) -> Path:
        return Path(self.server.config.directory)

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False, "show_banner": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def start_server(tmp_path: Path) -> Generator[Callable[..., ServerRunner], None, None]:
    """
    Factory starting servers in background threads; all stopped at teardown.

        runner = start_server(router=my_router)
        runner.port
    """
    runners: List[ServerRunner] = []

    def _start(router: Optional[Router] = None, **config_overrides) -> ServerRunner:
        settings = dict(
            host="127.0.0.1",
            port=0,  # Let OS pick a free port
            directory=str(tmp_path),
            log_level="WARNING",
        )
        settings.update(config_overrides)

        runner = ServerRunner(HTTPServer(ServerConfig(**settings), router=router))
        runner.start()
        runners.append(runner)
        return runner

    yield _start

    for runner in runners:
        runner.stop()


@pytest.fixture
def running_server(start_server) -> ServerRunner:
    """A server on a free port serving files from tmp_path."""
    return start_server()


@pytest.fixture
def make_client() -> Generator[Callable[[int], RawClient], None, None]:
    """Factory for raw clients; all closed at teardown."""
    clients: List[RawClient] = []

    def _make(port: int) -> RawClient:
        client = RawClient(port)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def connect(running_server: ServerRunner, make_client) -> Callable[[], RawClient]:
    """Factory for clients connected to running_server."""
    return lambda: make_client(running_server.port)
