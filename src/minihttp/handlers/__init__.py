"""
=============================================================================
HANDLERS MODULE
=============================================================================

A handler is a function from HTTPRequest to HTTPResponse:

    Request                 Handler                 Response
   ┌──────────┐           ┌─────────┐           ┌──────────┐
   │ GET      │           │         │           │ 200 OK   │
   │ /echo/hi │ ────────▶ │  echo   │ ────────▶ │          │
   │          │           │         │           │ hi       │
   └──────────┘           └─────────┘           └──────────┘

Handlers report expected failures as responses (a missing file is a
400, not an exception). An exception escaping a handler is a bug; the
server logs it and answers 500.

Built-in handlers:
- root:          /              → 200, empty body
- echo:          /echo/<text>   → 200, <text>
- user_agent:    /user-agent    → 200, the User-Agent header
- FileHandler:   /files/<name>  → GET reads, POST writes
"""

from .basic import root, echo, user_agent
from .files import FileHandler, PathEscapeError, SymlinkLoopError

__all__ = [
    "root",
    "echo",
    "user_agent",
    "FileHandler",
    "PathEscapeError",
    "SymlinkLoopError",
]
