"""
End-to-end tests: a real server on a real socket.
"""

import socket
import threading

import pytest

from minihttp import HTTPServer, ServerConfig
from minihttp.http import Router, ok


class TestScenarios:
    """One request, one response, over TCP."""

    def test_root(self, connect):
        status, headers, body = connect().request(b"GET / HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == "0"
        assert body == b""

    def test_echo(self, connect):
        status, headers, body = connect().request(
            b"GET /echo/hello HTTP/1.1\r\nHost: localhost\r\n\r\n"
        )

        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Type"] == "text/plain"
        assert headers["Content-Length"] == "5"
        assert body == b"hello"

    def test_user_agent(self, connect):
        status, _, body = connect().request(
            b"GET /user-agent HTTP/1.1\r\nUser-Agent: test-client\r\n\r\n"
        )

        assert status == "HTTP/1.1 200 OK"
        assert body == b"test-client"

    def test_user_agent_lowercase_header(self, connect):
        _, _, body = connect().request(
            b"GET /user-agent HTTP/1.1\r\nuser-agent: test-client\r\n\r\n"
        )

        assert body == b"test-client"

    def test_post_then_get_file(self, connect, running_server):
        client = connect()

        status, _, body = client.request(
            b"POST /files/note.txt HTTP/1.1\r\nContent-Length: 2\r\n\r\nhi"
        )
        assert status == "HTTP/1.1 201 Created"
        assert body == b""
        assert (running_server.directory / "note.txt").read_bytes() == b"hi"

        status, headers, body = client.request(b"GET /files/note.txt HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Type"] == "application/octet-stream"
        assert body == b"hi"

    def test_missing_file(self, connect):
        status, _, body = connect().request(b"GET /files/missing.txt HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 400 Bad Request"
        assert b"FileNotFoundError" in body

    def test_unknown_route(self, connect):
        status, _, body = connect().request(b"GET /nope HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 404 Not Found"
        assert body == b""

    def test_files_wrong_method(self, connect):
        status, headers, _ = connect().request(b"PUT /files/a HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 405 Method Not Allowed"
        assert headers["Allow"] == "GET, POST"

    def test_traversal_rejected(self, connect):
        status, _, _ = connect().request(b"GET /files/.. HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 400 Bad Request"


class TestConnectionLifecycle:
    """Keep-alive, Connection: close, and malformed input."""

    def test_keep_alive_several_requests(self, connect):
        client = connect()

        for word in ("one", "two", "three"):
            status, _, body = client.request(f"GET /echo/{word} HTTP/1.1\r\n\r\n".encode())
            assert status == "HTTP/1.1 200 OK"
            assert body == word.encode()

    def test_requests_in_one_segment(self, connect):
        """Bytes of the second request arriving with the first are not lost."""
        client = connect()
        client.send(
            b"POST /files/batch.txt HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc"
            b"GET /files/batch.txt HTTP/1.1\r\n\r\n"
        )

        assert client.read_response()[0] == "HTTP/1.1 201 Created"
        assert client.read_response()[2] == b"abc"

    def test_connection_close(self, connect):
        client = connect()

        status, _, body = client.request(
            b"GET /echo/bye HTTP/1.1\r\nConnection: close\r\n\r\n"
        )

        assert status == "HTTP/1.1 200 OK"
        assert body == b"bye"
        assert client.is_closed_by_server()

    def test_connection_close_ignores_following_request(self, connect):
        client = connect()
        client.send(
            b"GET /echo/first HTTP/1.1\r\nConnection: close\r\n\r\n"
            b"GET /echo/second HTTP/1.1\r\n\r\n"
        )

        assert client.read_response()[2] == b"first"
        assert client.is_closed_by_server()

    def test_connection_close_case_sensitive(self, connect):
        """Only the exact value "close" ends the connection."""
        client = connect()

        client.request(b"GET /echo/a HTTP/1.1\r\nConnection: Close\r\n\r\n")
        status, _, body = client.request(b"GET /echo/b HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert body == b"b"

    def test_malformed_request_closes_without_response(self, connect):
        client = connect()
        client.send(b"GARBAGE\r\n\r\n")

        assert client.is_closed_by_server()

    def test_invalid_utf8_closes_without_response(self, connect):
        client = connect()
        client.send(b"GET /echo/caf\xff HTTP/1.1\r\n\r\n")

        assert client.is_closed_by_server()

    def test_truncated_body_closes_without_response(self, connect):
        client = connect()
        client.send(b"POST /files/x HTTP/1.1\r\nContent-Length: 10\r\n\r\nshort")
        client.sock.shutdown(socket.SHUT_WR)

        assert client.is_closed_by_server()

    def test_server_survives_bad_client(self, connect):
        connect().send(b"NONSENSE\r\n\r\n")

        status, _, _ = connect().request(b"GET / HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 200 OK"


class TestConcurrency:
    """Thread-per-connection isolation."""

    def test_silent_client_does_not_block_others(self, connect):
        """A peer that never sends holds only its own thread."""
        silent = connect()

        status, _, body = connect().request(b"GET /echo/alive HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert body == b"alive"
        silent.close()

    def test_partial_request_does_not_block_others(self, connect):
        stalled = connect()
        stalled.send(b"GET /echo/slow HTTP/1.1\r\nHost: x\r\n")  # No blank line yet

        assert connect().request(b"GET /echo/fast HTTP/1.1\r\n\r\n")[2] == b"fast"

        stalled.send(b"\r\n")
        assert stalled.read_response()[2] == b"slow"

    def test_many_parallel_clients(self, running_server, make_client):
        results = {}
        errors = []

        def worker(n: int):
            try:
                client = make_client(running_server.port)
                for i in range(5):
                    _, _, body = client.request(f"GET /echo/{n}-{i} HTTP/1.1\r\n\r\n".encode())
                    results[(n, i)] = body
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert errors == []
        assert results == {(n, i): f"{n}-{i}".encode() for n in range(10) for i in range(5)}


class TestServerLifecycle:
    """Startup, custom routers, crash handling, shutdown."""

    def test_server_address_reports_real_port(self, running_server):
        host, port = running_server.server.server_address

        assert host == "127.0.0.1"
        assert port != 0

    def test_invalid_config_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(directory=str(tmp_path / "missing")))

    def test_fixed_port(self, start_server, free_port):
        runner = start_server(port=free_port)

        assert runner.port == free_port

    @pytest.fixture
    def crashing_server(self, start_server):
        router = Router()

        @router.route("boom")
        def boom(request):
            raise RuntimeError("handler bug")

        @router.route("fine")
        def fine(request):
            return ok("fine")

        return start_server(router=router)

    def test_handler_crash_is_500_and_connection_survives(self, crashing_server, make_client, caplog):
        client = make_client(crashing_server.port)

        status, _, body = client.request(b"GET /boom HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 500 Internal Server Error"
        assert body == b""

        status, _, body = client.request(b"GET /fine HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 200 OK"
        assert body == b"fine"

        crashes = [record for record in caplog.records if record.exc_info]
        assert any(str(record.exc_info[1]) == "handler bug" for record in crashes)

    def test_shutdown_stops_accepting(self, start_server):
        runner = start_server()
        port = runner.port

        runner.stop()

        assert not runner._thread.is_alive()
        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1).close()
