"""
Helpers for building ASGI scope / receive / send and in-memory response
writers in tests.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any

from waymark.request import Request
from waymark.writer import ResponseWriter


def make_scope(
    method: str = "GET",
    path: str = "/",
    headers: dict[str, str] | None = None,
    query_string: str = "",
    scope_type: str = "http",
    extras: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a minimal ASGI scope dict."""
    raw_headers: list[tuple[bytes, bytes]] = []
    for name, value in (headers or {}).items():
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    scope: dict[str, Any] = {
        "type": scope_type,
        "method": method,
        "path": path,
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "client": ("127.0.0.1", 12345),
        "scheme": "http",
    }
    if extras:
        scope.update(extras)
    return scope


def make_receive(body: bytes = b"") -> Callable[[], Awaitable[dict[str, Any]]]:
    """Create a simple ASGI receive callable that yields one body chunk."""
    called = False

    async def receive() -> dict[str, Any]:
        nonlocal called
        if not called:
            called = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    return receive


def make_request(
    method: str = "GET",
    path: str = "/",
    headers: dict[str, str] | None = None,
    query_string: str = "",
    body: bytes = b"",
) -> Request:
    """Build a Request over a fresh scope."""
    scope = make_scope(method=method, path=path, headers=headers, query_string=query_string)
    return Request(scope, make_receive(body))


class ResponseCapture:
    """Captures ASGI send() messages for assertions."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []
        self.status: int = 0
        self.headers: dict[str, str] = {}
        self.set_cookies: list[str] = []
        self.body: bytes = b""

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)
        if message["type"] == "http.response.start":
            self.status = message.get("status", 0)
            for name, value in message.get("headers", []):
                key = name.decode("latin-1").lower()
                if key == "set-cookie":
                    self.set_cookies.append(value.decode("latin-1"))
                self.headers[key] = value.decode("latin-1")
        elif message["type"] == "http.response.body":
            self.body += message.get("body", b"")

    @property
    def starts(self) -> int:
        """Number of ``http.response.start`` messages sent."""
        return sum(1 for m in self.messages if m["type"] == "http.response.start")


class RecordingWriter(ResponseWriter):
    """In-memory ResponseWriter."""

    def __init__(self) -> None:
        self._headers: dict[str, str] = {}
        self.cookies: list[str] = []
        self.status: int | None = None
        self.header_writes: int = 0
        self.body: bytes = b""
        self.finished: bool = False

    @property
    def headers(self) -> MutableMapping[str, str]:
        return self._headers

    def add_cookie(self, set_cookie: str) -> None:
        self.cookies.append(set_cookie)

    async def write_header(self, status_code: int) -> None:
        self.header_writes += 1
        if self.status is None:
            self.status = status_code

    async def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self.status is None:
            await self.write_header(200)
        self.body += data
        return len(data)

    async def finish(self) -> None:
        if self.status is None:
            self.status = 200
        self.finished = True
