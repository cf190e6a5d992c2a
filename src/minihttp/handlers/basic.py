"""
Stateless handlers: root, echo and user-agent reflection.

Each is a plain function from HTTPRequest to HTTPResponse.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok, bad_request


def root(request: HTTPRequest) -> HTTPResponse:
    """GET / → 200 OK, empty body."""
    return ok()


def echo(request: HTTPRequest) -> HTTPResponse:
    """
    /echo/<text> → 200 OK with <text> as the body.

    Only the second segment is echoed: /echo/a/b answers "a".
    /echo with nothing after it is a 400.
    """
    if len(request.path) < 2:
        return bad_request()
    return ok(request.path[1])


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """/user-agent → 200 OK with the User-Agent header, or "Unknown"."""
    agent = request.user_agent
    return ok(agent if agent is not None else "Unknown")
