"""
=============================================================================
ROUTER / DISPATCHER
=============================================================================

Maps a parsed request to a handler by the FIRST path segment, then by
method.

=============================================================================
ROUTING ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /files/note.txt     path = ["files", "note.txt"]               │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTER            key = path[0] = "files"                   │   │
    │   │                                                              │   │
    │   │  ┌────────────────────────────────────────────────────────┐ │   │
    │   │  │ ""           ANY  → root                               │ │   │
    │   │  │ "echo"       ANY  → echo                               │ │   │
    │   │  │ "user-agent" ANY  → user_agent                         │ │   │
    │   │  │ "files"      GET  → files.read        ← MATCH!         │ │   │
    │   │  │ "files"      POST → files.write                        │ │   │
    │   │  └────────────────────────────────────────────────────────┘ │   │
    │   │                                                              │   │
    │   │  key unknown               → 404 Not Found                   │   │
    │   │  key known, method unknown → 405 Method Not Allowed          │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   files.read(request)                                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

An empty path (request-target "/" or "//") routes under the key "".

Methods are compared exactly as sent: "get" is not "GET".

Dispatch itself has no side effects; whatever the handler does (like
writing a file) is the handler's business.

=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import logging

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


logger = logging.getLogger(__name__)


# Handler: a function that takes a request and returns a response.
# This is the signature every route handler follows.
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A registered route.

        Route(segment="files", method="GET", handler=files.read)

    method=None accepts any method.
    """

    segment: str
    method: Optional[str]
    handler: Handler


class Router:
    """
    First-segment request router.

    ==========================================================================
    DECORATOR-BASED API
    ==========================================================================

        router = Router()

        @router.route("echo")
        def echo(request):
            return ok(request.path[1])

        @router.get("files")
        def read_file(request):
            ...

        response = router.dispatch(request)

    ==========================================================================
    """

    def __init__(self, not_found_handler: Optional[Handler] = None):
        """
        Args:
            not_found_handler: Called when no route owns the first segment.
                               Defaults to an empty 404.
        """
        self._routes: Dict[str, List[Route]] = {}
        self._not_found = not_found_handler or (lambda request: not_found())

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        segment: str,
        handler: Handler,
        method: Optional[str] = None,
    ) -> Route:
        """
        Register a handler for a first path segment.

        Args:
            segment: First path segment ("" for the empty path)
            handler: Function taking a request, returning a response
            method: Exact method token (None for any method)

        Returns:
            The registered Route
        """
        if "/" in segment:
            raise ValueError(f"Route segment cannot contain '/': {segment!r}")

        route = Route(segment=segment, method=method, handler=handler)
        self._routes.setdefault(segment, []).append(route)
        return route

    def route(
        self,
        segment: str,
        method: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """
        Decorator for registering routes.

        Usage:
            @router.route("user-agent")
            def user_agent(request):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(segment, handler, method)
            return handler  # Return handler unchanged (allows stacking decorators)
        return decorator

    def get(self, segment: str) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(segment, "GET")

    def post(self, segment: str) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(segment, "POST")

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def match(self, method: str, path: List[str]) -> Optional[Route]:
        """
        Find the route for a method and path.

        Returns:
            The first matching Route, or None
        """
        segment = path[0] if path else ""
        for route in self._routes.get(segment, []):
            if route.method is None or route.method == method:
                return route
        return None

    def get_allowed_methods(self, path: List[str]) -> List[str]:
        """
        Methods registered for the path's first segment.

        Used for the Allow header of 405 responses. Empty if the segment
        is unknown.
        """
        segment = path[0] if path else ""
        return sorted({
            route.method for route in self._routes.get(segment, [])
            if route.method is not None
        })

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler and return the handler's response.

        1. Match first segment + method → call handler
        2. First segment known, method not → 405
        3. First segment unknown → not-found handler (404)
        """
        route = self.match(request.method, request.path)
        if route:
            return route.handler(request)

        segment = request.path[0] if request.path else ""
        if segment in self._routes:
            allowed = self.get_allowed_methods(request.path)
            logger.debug(f"{request.method} not allowed on /{segment}, allowed: {allowed}")
            return method_not_allowed(allowed)

        return self._not_found(request)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, in registration order per segment."""
        return [route for routes in self._routes.values() for route in routes]

    def print_routes(self) -> None:
        """
        Print all registered routes (useful for debugging).

        Example output:
            Registered Routes:
            ------------------------------------------------------------
              ANY      /
              ANY      /echo
              GET      /files
            ------------------------------------------------------------
        """
        print("\nRegistered Routes:")
        print("-" * 60)
        for route in self.routes():
            method = route.method or "ANY"
            print(f"  {method:8} /{route.segment}")
        print("-" * 60)
