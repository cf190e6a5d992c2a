"""
Unit tests for the /files handler.
"""

import os
import sys

import pytest

from minihttp import HTTPServer, ServerConfig
from minihttp.handlers.files import FileHandler, PathEscapeError, SymlinkLoopError, describe_error
from minihttp.http.request import HTTPRequest, split_path
from minihttp.http.response import HTTPStatus


def make_request(method: str, target: str, body: bytes = b"") -> HTTPRequest:
    return HTTPRequest(method=method, path=split_path(target), target=target, body=body)


@pytest.fixture
def files(tmp_path) -> FileHandler:
    return FileHandler(tmp_path)


class TestRead:
    """GET /files/<name>"""

    def test_read_existing_file(self, files, tmp_path):
        (tmp_path / "hello.txt").write_bytes(b"hello world")

        response = files.read(make_request("GET", "/files/hello.txt"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"hello world"
        assert response.headers["Content-Type"] == "application/octet-stream"
        assert response.headers["Content-Length"] == "11"

    def test_read_binary_file(self, files, tmp_path):
        payload = bytes(range(256))
        (tmp_path / "blob.bin").write_bytes(payload)

        assert files.read(make_request("GET", "/files/blob.bin")).body == payload

    def test_read_is_idempotent(self, files, tmp_path):
        (tmp_path / "same.txt").write_bytes(b"unchanged")
        request = make_request("GET", "/files/same.txt")

        assert files.read(request).to_bytes() == files.read(request).to_bytes()

    def test_read_missing_file(self, files):
        response = files.read(make_request("GET", "/files/missing.txt"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body.startswith(b"FileNotFoundError")

    def test_read_directory(self, files, tmp_path):
        (tmp_path / "subdir").mkdir()

        response = files.read(make_request("GET", "/files/subdir"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body != b""

    def test_missing_name(self, files):
        response = files.read(make_request("GET", "/files"))

        assert response.status == HTTPStatus.BAD_REQUEST

    def test_extra_segments_ignored(self, files, tmp_path):
        (tmp_path / "a.txt").write_bytes(b"A")

        assert files.read(make_request("GET", "/files/a.txt/ignored")).body == b"A"

    def test_error_body_hides_absolute_path(self, files, tmp_path):
        response = files.read(make_request("GET", "/files/missing.txt"))

        assert str(tmp_path).encode() not in response.body


class TestWrite:
    """POST /files/<name>"""

    def test_write_creates_file(self, files, tmp_path):
        response = files.write(make_request("POST", "/files/note.txt", body=b"hi"))

        assert response.status == HTTPStatus.CREATED
        assert response.body == b""
        assert (tmp_path / "note.txt").read_bytes() == b"hi"

    def test_write_truncates_existing(self, files, tmp_path):
        (tmp_path / "note.txt").write_bytes(b"a much longer old content")

        files.write(make_request("POST", "/files/note.txt", body=b"new"))

        assert (tmp_path / "note.txt").read_bytes() == b"new"

    def test_write_empty_body(self, files, tmp_path):
        assert files.write(make_request("POST", "/files/empty")).status == HTTPStatus.CREATED
        assert (tmp_path / "empty").read_bytes() == b""

    def test_write_then_read(self, files):
        files.write(make_request("POST", "/files/round.txt", body=b"\x00data\r\n"))

        assert files.read(make_request("GET", "/files/round.txt")).body == b"\x00data\r\n"

    def test_write_to_directory_fails(self, files, tmp_path):
        (tmp_path / "subdir").mkdir()

        response = files.write(make_request("POST", "/files/subdir", body=b"x"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body.startswith(b"IsADirectoryError")

    def test_missing_name(self, files):
        response = files.write(make_request("POST", "/files", body=b"x"))

        assert response.status == HTTPStatus.BAD_REQUEST

    def test_nul_in_name(self, files):
        response = files.write(make_request("POST", "/files/bad\x00name", body=b"x"))

        assert response.status == HTTPStatus.BAD_REQUEST


class TestPathTraversal:
    """Names must resolve strictly inside the base directory."""

    @pytest.mark.parametrize("name", ["..", "."])
    def test_resolve_rejects(self, files, name):
        with pytest.raises(PathEscapeError):
            files.resolve(name)

    def test_resolve_inside(self, files, tmp_path):
        assert files.resolve("a.txt") == (tmp_path / "a.txt").resolve()

    def test_dotdot_get_rejected(self, files):
        response = files.read(make_request("GET", "/files/.."))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert b"escapes" in response.body

    def test_dotdot_post_writes_nothing(self, files, tmp_path):
        response = files.write(make_request("POST", "/files/..", body=b"x"))

        assert response.status == HTTPStatus.BAD_REQUEST

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
    def test_symlink_out_of_base_rejected(self, tmp_path):
        base = tmp_path / "base"
        base.mkdir()
        outside = tmp_path / "secret.txt"
        outside.write_bytes(b"secret")
        (base / "link").symlink_to(outside)

        response = FileHandler(base).read(make_request("GET", "/files/link"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert b"secret" not in response.body


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
class TestSymlinkLoop:
    """A self-referencing symlink is a 400, never an escaping exception."""

    @pytest.fixture
    def loop(self, tmp_path):
        link = tmp_path / "loop"
        os.symlink(link, link)
        return link

    def test_get_loop(self, files, loop):
        response = files.read(make_request("GET", "/files/loop"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body != b""

    def test_post_loop(self, files, loop):
        response = files.write(make_request("POST", "/files/loop", body=b"x"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body != b""

    def test_loop_is_not_a_server_error(self, tmp_path, loop):
        server = HTTPServer(ServerConfig(directory=str(tmp_path)))

        response = server.handle_request(make_request("GET", "/files/loop"))

        assert response.status == HTTPStatus.BAD_REQUEST

    @pytest.mark.skipif(sys.version_info >= (3, 13), reason="loop surfaces on open from 3.13")
    def test_resolve_loop(self, files, loop):
        with pytest.raises(SymlinkLoopError, match="Symlink loop: loop"):
            files.resolve("loop")


class TestDescribeError:

    def test_uses_class_and_strerror(self):
        error = FileNotFoundError(2, "No such file or directory", "/srv/x")

        assert describe_error(error) == "FileNotFoundError: No such file or directory"

    def test_without_strerror(self):
        assert describe_error(OSError("plain")) == "OSError: plain"
