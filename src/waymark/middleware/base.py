"""
Base classes for ASGI middleware wrapped around a Router.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from waymark.types import ASGIApp, Receive, Scope, Send


class Middleware(ABC):
    """
    ASGI middleware base.

    Subclasses implement :meth:`process` for HTTP requests; lifespan and
    websocket scopes go straight to the wrapped application.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            await self.process(scope, receive, send)
        else:
            await self.app(scope, receive, send)

    @abstractmethod
    async def process(self, scope: Scope, receive: Receive, send: Send) -> None:
        ...


MiddlewareFactory = type[Middleware] | Callable[..., ASGIApp]


class MiddlewareStack:
    """
    Ordered middleware around one ASGI application. The first entry
    added ends up outermost.
    """

    def __init__(self, app: ASGIApp) -> None:
        self._app = app
        self._entries: list[tuple[MiddlewareFactory, dict[str, Any]]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, factory: MiddlewareFactory, **options: Any) -> None:
        """Append *factory*, called later as ``factory(app, **options)``."""
        self._entries.append((factory, options))

    def build(self) -> ASGIApp:
        app = self._app
        for factory, options in reversed(self._entries):
            app = factory(app, **options)
        return app
