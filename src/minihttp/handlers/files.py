"""
=============================================================================
FILE HANDLER
=============================================================================

Reads and writes files in a single base directory:

    GET  /files/<name>   → 200 + file bytes (application/octet-stream)
    POST /files/<name>   → request body written to <name>, 201 Created

Any filesystem error (missing file, permission denied, name is a
directory...) becomes 400 Bad Request with a readable description of
the error as the body:

    HTTP/1.1 400 Bad Request
    Content-Type: text/plain
    Content-Length: 44

    FileNotFoundError: No such file or directory

=============================================================================
PATH TRAVERSAL
=============================================================================

A naive join lets the client leave the base directory:

    base_dir = /srv/files
    GET /files/..      → /srv/files/..  → /srv         ✗

We resolve the joined path (normalizes ".." and follows symlinks) and
require the result to sit strictly INSIDE the resolved base directory:

    (base_dir / name).resolve().relative_to(base_dir)   # Raises if outside!

Since the router already split the target on "/", <name> is a single
segment; the check mostly catches "..", "." and symlinks pointing out.
A symlink that loops back on itself is refused too. Rejections are
400 Bad Request like every other file failure.

=============================================================================
CONCURRENCY
=============================================================================

Handlers run on many connection threads at once. Nothing here is shared
except the immutable base directory. Two POSTs to the same name race at
the OS level; the last write wins.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok, created, bad_request


logger = logging.getLogger(__name__)


class PathEscapeError(ValueError):
    """The requested name resolves outside the base directory."""


class SymlinkLoopError(ValueError):
    """The requested name is a symlink that never resolves to a file."""


def describe_error(error: OSError) -> str:
    """
    Human-readable description of a filesystem error for a response body.

    Uses the exception class and OS message, but not the filename, so the
    server's absolute paths never reach the client.
    """
    return f"{type(error).__name__}: {error.strerror or error}"


class FileHandler:
    """
    Serves GET and POST for /files/<name> from one base directory.

    Usage:
        files = FileHandler("/srv/files")
        router.add_route("files", files.read, method="GET")
        router.add_route("files", files.write, method="POST")
    """

    def __init__(self, base_dir: Union[str, Path] = "."):
        """
        Args:
            base_dir: Directory holding the files. Resolved once, here.
        """
        self.base_dir = Path(base_dir).resolve()

    def resolve(self, name: str) -> Path:
        """
        Map a path segment to a file path inside base_dir.

        Raises:
            PathEscapeError: If the result is base_dir itself or outside it.
            SymlinkLoopError: If resolving the name loops.
        """
        try:
            full_path = (self.base_dir / name).resolve()
        except RuntimeError:
            # Python < 3.13 raises RuntimeError on a loop; newer versions
            # return the path and the later open fails with ELOOP.
            raise SymlinkLoopError(f"Symlink loop: {name}")

        try:
            relative = full_path.relative_to(self.base_dir)
        except ValueError:
            raise PathEscapeError(f"Path escapes base directory: {name}")

        if not relative.parts:
            raise PathEscapeError(f"Path escapes base directory: {name}")

        return full_path

    def read(self, request: HTTPRequest) -> HTTPResponse:
        """GET /files/<name> → file contents as application/octet-stream."""
        if len(request.path) < 2:
            return bad_request("Missing file name")

        try:
            path = self.resolve(request.path[1])
            content = path.read_bytes()
        except PathEscapeError as e:
            logger.warning(f"Path traversal attempt: {request.path[1]!r}")
            return bad_request(str(e))
        except OSError as e:
            logger.debug(f"Read of {request.path[1]!r} failed: {e}")
            return bad_request(describe_error(e))
        except ValueError as e:
            # e.g. "embedded null byte" in the name
            return bad_request(str(e))

        return ok(content, content_type="application/octet-stream")

    def write(self, request: HTTPRequest) -> HTTPResponse:
        """POST /files/<name> → create or truncate <name> with the request body."""
        if len(request.path) < 2:
            return bad_request("Missing file name")

        try:
            path = self.resolve(request.path[1])
            path.write_bytes(request.body)
        except PathEscapeError as e:
            logger.warning(f"Path traversal attempt: {request.path[1]!r}")
            return bad_request(str(e))
        except OSError as e:
            logger.debug(f"Write of {request.path[1]!r} failed: {e}")
            return bad_request(describe_error(e))
        except ValueError as e:
            # e.g. "embedded null byte" in the name
            return bad_request(str(e))

        logger.debug(f"Wrote {len(request.body)} bytes to {path}")
        return created()
