"""
Request view for Waymark handlers and filters.

A Request is a read-only view over the ASGI scope plus the per-request
:class:`~waymark.context.Context` the router attached to it.
"""

import json
from collections.abc import AsyncIterator, Mapping
from functools import cached_property
from typing import Any
from urllib.parse import parse_qs

from waymark.config import DEFAULT_MAX_BODY_SIZE
from waymark.context import Context, Params, Values
from waymark.cookies import parse_cookies
from waymark.exceptions import BadRequest, PayloadTooLarge
from waymark.types import FormData, Headers, QueryParams, Receive, Scope


class Request:
    """
    HTTP request view.

    Path parameters are never merged into the query string: they live in
    ``request.params``, independent of ``query_params``. The body is
    read lazily, at most once, and is subject to ``max_body_size``
    (``0`` disables the limit).
    """

    def __init__(
        self,
        scope: Scope,
        receive: Receive,
        context: Context | None = None,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ) -> None:
        self.scope = scope
        self.context: Context = context if context is not None else Context()
        self._receive = receive
        self._limit = max_body_size
        self._cached_body: bytes | None = None
        self._drained = False

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"

    # -------------------------------------------------------------------------
    # Scope
    # -------------------------------------------------------------------------

    @property
    def method(self) -> str:
        return str(self.scope.get("method", "GET")).upper()

    @property
    def path(self) -> str:
        """Raw request path, as matched against route patterns."""
        return self.scope.get("path", "/")

    @property
    def scheme(self) -> str:
        return self.scope.get("scheme", "http")

    @property
    def client(self) -> tuple[str, int] | None:
        """Peer address as ``(host, port)``, when the server reports one."""
        peer = self.scope.get("client")
        return (peer[0], peer[1]) if peer else None

    @property
    def router(self) -> Any:
        """The router dispatching this request, ``None`` outside dispatch."""
        return self.scope.get("router")

    @property
    def route(self) -> Any:
        """The route matched by dispatch, ``None`` until one matches."""
        return self.scope.get("route")

    # -------------------------------------------------------------------------
    # Per-request stores
    # -------------------------------------------------------------------------

    @property
    def params(self) -> Params:
        return self.context.params

    @property
    def values(self) -> Values:
        return self.context.values

    # -------------------------------------------------------------------------
    # Query string, headers and cookies
    # -------------------------------------------------------------------------

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("utf-8", errors="replace")

    @cached_property
    def query_params(self) -> QueryParams:
        """Query parameters; repeated keys map to a list."""
        return _collapse(parse_qs(self.query_string, keep_blank_values=True))

    @cached_property
    def headers(self) -> Headers:
        """Request headers keyed by lower-case name. The last duplicate wins."""
        return {
            raw_name.decode("latin-1").lower(): raw_value.decode("latin-1")
            for raw_name, raw_value in self.scope.get("headers", [])
        }

    @cached_property
    def cookies(self) -> Mapping[str, str]:
        return parse_cookies(self.headers.get("cookie", ""))

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def url(self) -> str:
        """Reconstructed absolute URL."""
        query = f"?{self.query_string}" if self.query_string else ""
        return f"{self.scheme}://{self.host}{self.path}{query}"

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def content_length(self) -> int | None:
        """
        Declared body length, or ``None`` when absent.

        Raises:
            BadRequest: If the header is not an integer.
        """
        declared = self.headers.get("content-length")
        if not declared:
            return None
        try:
            return int(declared)
        except ValueError:
            raise BadRequest(f"Invalid Content-Length header: {declared!r}") from None

    def get_header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: str | None = None) -> str | None:
        """First value of query parameter *name*."""
        found = self.query_params.get(name, default)
        if isinstance(found, list):
            return found[0] if found else default
        return found

    def get_cookie(self, name: str, default: str | None = None) -> str | None:
        return self.cookies.get(name, default)

    # -------------------------------------------------------------------------
    # Body
    # -------------------------------------------------------------------------

    async def stream(self) -> AsyncIterator[bytes]:
        """
        Yield body chunks as they arrive, enforcing the size limit.

        Raises:
            PayloadTooLarge: As soon as the declared or received size
                             exceeds the limit.
        """
        if self._drained:
            return

        declared = self.content_length
        if declared is not None:
            self._check_size(declared)

        received = 0
        more_body = True
        while more_body:
            message = await self._receive()
            more_body = message.get("more_body", False)
            chunk = message.get("body", b"")
            if chunk:
                received += len(chunk)
                self._check_size(received)
                yield chunk
        self._drained = True

    async def body(self) -> bytes:
        """Read the whole body. Later calls return the same bytes."""
        if self._cached_body is None:
            self._cached_body = b"".join([chunk async for chunk in self.stream()])
        return self._cached_body

    async def text(self) -> str:
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        """Decode the body as JSON; an empty body is ``None``."""
        text = await self.text()
        return json.loads(text) if text else None

    async def form(self) -> FormData:
        """Decode a URL-encoded form body."""
        return _collapse(parse_qs(await self.text(), keep_blank_values=True))

    def _check_size(self, size: int) -> None:
        if self._limit > 0 and size > self._limit:
            raise PayloadTooLarge(
                f"Request body too large. Maximum allowed: {self._limit} bytes"
            )


def _collapse(parsed: dict[str, list[str]]) -> dict[str, str | list[str]]:
    return {key: items[0] if len(items) == 1 else items for key, items in parsed.items()}
