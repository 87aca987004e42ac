"""
Routing for Waymark.

Routes are kept in registration order and tried one by one; the first
route whose method matches and whose pattern covers the whole path
handles the request. There is no specificity ranking, so register the
more specific patterns first.
"""

import logging
import os
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from waymark.config import RouterConfig
from waymark.context import Context
from waymark.exceptions import RoutingError
from waymark.filters import param_filter, path_filter
from waymark.middleware import ErrorHandlerMiddleware, MiddlewareStack
from waymark.middleware.base import MiddlewareFactory
from waymark.patterns import CompiledPattern, build_path, compile_pattern
from waymark.request import Request
from waymark.response import FileResponse, is_within, not_found, unauthorized
from waymark.templating import create_environment
from waymark.types import (
    ASGIApp,
    AuthPredicate,
    Filter,
    Handler,
    Receive,
    Scope,
    Send,
)
from waymark.writer import ASGIResponseWriter, ResponseWriter, TrackingWriter

logger = logging.getLogger("waymark.routing")
access_logger = logging.getLogger("waymark.access")


class Method(str, Enum):
    """HTTP methods a route can be registered for."""

    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    CONNECT = "CONNECT"
    TRACE = "TRACE"

    @classmethod
    def parse(cls, value: "Method | str") -> "Method":
        if isinstance(value, Method):
            return value
        try:
            return cls(value.upper())
        except ValueError:
            raise RoutingError(f"Unsupported HTTP method: {value!r}") from None


@dataclass(frozen=True, slots=True)
class Route:
    """A registered route. Immutable once created."""

    method: Method
    compiled: CompiledPattern
    handler: Handler
    auth: AuthPredicate | None = None
    name: str | None = None

    @property
    def pattern(self) -> str:
        return self.compiled.pattern

    @property
    def param_names(self) -> tuple[str, ...]:
        return self.compiled.param_names

    def match(self, method: str, path: str) -> list[str] | None:
        """Captured values if this route handles *method* and *path*."""
        if method != self.method.value:
            return None
        return self.compiled.match(path)


class Router:
    """
    Request router and ASGI application.

    Usage:
        router = Router()

        @router.get("/person/:last/:first")
        async def person(request, writer):
            await serve_json(writer, dict(request.params))

        router.use(require_api_key)

        # Run with: uvicorn main:router
    """

    def __init__(self, config: RouterConfig | None = None) -> None:
        self.config = config or RouterConfig()

        # Registration swaps in new tuples under the lock; dispatch reads
        # whichever tuple is current without locking.
        self._lock = threading.Lock()
        self._routes: tuple[Route, ...] = ()
        self._filters: tuple[Filter, ...] = ()

        self.globals: dict[str, Any] = {}
        self.template_env: Any = None
        if self.config.template_dir is not None:
            self.templates(self.config.template_dir)

        self._middleware_stack = MiddlewareStack(self._handle_request)
        self._middleware_stack.add(ErrorHandlerMiddleware, debug=self.config.debug)
        self._app: ASGIApp | None = None

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    @property
    def routes(self) -> tuple[Route, ...]:
        """Snapshot of the registered routes, in priority order."""
        return self._routes

    @property
    def filters(self) -> tuple[Filter, ...]:
        """Snapshot of the registered filters, in execution order."""
        return self._filters

    def add_route(
        self,
        method: Method | str,
        pattern: str,
        handler: Handler,
        *,
        auth: AuthPredicate | None = None,
        name: str | None = None,
    ) -> Route:
        """
        Compile *pattern* and append a route for it.

        Raises:
            RoutingError: If the method is unknown or the pattern does
                          not compile.
        """
        route = Route(
            method=Method.parse(method),
            compiled=compile_pattern(pattern),
            handler=handler,
            auth=auth,
            name=name,
        )
        with self._lock:
            self._routes = self._routes + (route,)
        logger.debug("registered %s %s", route.method.value, pattern)
        return route

    def _register(
        self,
        method: Method,
        pattern: str,
        handler: Handler | None,
        auth: AuthPredicate | None,
        name: str | None,
    ) -> Any:
        if handler is not None:
            return self.add_route(method, pattern, handler, auth=auth, name=name)

        def decorator(func: Handler) -> Handler:
            self.add_route(method, pattern, func, auth=auth, name=name)
            return func
        return decorator

    def get(
        self,
        pattern: str,
        handler: Handler | None = None,
        *,
        auth: AuthPredicate | None = None,
        name: str | None = None,
    ) -> Any:
        """Register a GET route, directly or as a decorator."""
        return self._register(Method.GET, pattern, handler, auth, name)

    def put(
        self,
        pattern: str,
        handler: Handler | None = None,
        *,
        auth: AuthPredicate | None = None,
        name: str | None = None,
    ) -> Any:
        """Register a PUT route, directly or as a decorator."""
        return self._register(Method.PUT, pattern, handler, auth, name)

    def post(
        self,
        pattern: str,
        handler: Handler | None = None,
        *,
        auth: AuthPredicate | None = None,
        name: str | None = None,
    ) -> Any:
        """Register a POST route, directly or as a decorator."""
        return self._register(Method.POST, pattern, handler, auth, name)

    def patch(
        self,
        pattern: str,
        handler: Handler | None = None,
        *,
        auth: AuthPredicate | None = None,
        name: str | None = None,
    ) -> Any:
        """Register a PATCH route, directly or as a decorator."""
        return self._register(Method.PATCH, pattern, handler, auth, name)

    def delete(
        self,
        pattern: str,
        handler: Handler | None = None,
        *,
        auth: AuthPredicate | None = None,
        name: str | None = None,
    ) -> Any:
        """Register a DELETE route, directly or as a decorator."""
        return self._register(Method.DELETE, pattern, handler, auth, name)

    def head(
        self,
        pattern: str,
        handler: Handler | None = None,
        *,
        auth: AuthPredicate | None = None,
        name: str | None = None,
    ) -> Any:
        """Register a HEAD route, directly or as a decorator."""
        return self._register(Method.HEAD, pattern, handler, auth, name)

    def options(
        self,
        pattern: str,
        handler: Handler | None = None,
        *,
        auth: AuthPredicate | None = None,
        name: str | None = None,
    ) -> Any:
        """Register an OPTIONS route, directly or as a decorator."""
        return self._register(Method.OPTIONS, pattern, handler, auth, name)

    def route(
        self,
        pattern: str,
        methods: list[Method | str] | None = None,
        *,
        auth: AuthPredicate | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator registering one route per method, in the order given."""
        def decorator(handler: Handler) -> Handler:
            for method in methods or [Method.GET]:
                self.add_route(method, pattern, handler, auth=auth, name=name)
            return handler
        return decorator

    def static(self, prefix: str, directory: str) -> Route:
        """
        Serve files below *directory* at ``prefix/<path>``. Paths that
        resolve outside *directory* and missing files get a 404.
        """
        base = os.path.realpath(directory)
        chunk_size = self.config.static_chunk_size

        async def serve_file(request: Request, writer: ResponseWriter) -> None:
            relative = request.params.get("filepath").lstrip("/")
            target = os.path.join(base, relative)
            if not is_within(target, base) or not os.path.isfile(target):
                await not_found(writer)
                return
            await FileResponse(target, base_directory=base, chunk_size=chunk_size)(writer)

        return self.add_route(Method.GET, prefix.rstrip("/") + "/:filepath(.+)", serve_file)

    def url_for(self, name: str, **params: Any) -> str:
        """
        Build the path of the route registered as *name*.

        Raises:
            RoutingError: If no route has that name or a parameter is missing.
        """
        for route in self._routes:
            if route.name == name:
                return build_path(route.compiled, params)
        raise RoutingError(f"No route named '{name}'")

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------

    def use(self, filter: Filter) -> None:
        """Append a filter. Filters run in order before the handler."""
        with self._lock:
            self._filters = self._filters + (filter,)

    def use_if_param(self, name: str, filter: Filter) -> None:
        """Append a filter that only runs when path parameter *name* is set."""
        self.use(param_filter(name, filter))

    def use_if_path(self, pattern: str, filter: Filter) -> None:
        """Append a filter that only runs when the path matches *pattern*."""
        self.use(path_filter(pattern, filter))

    # -------------------------------------------------------------------------
    # Templates and global values
    # -------------------------------------------------------------------------

    def templates(self, directory: str) -> None:
        """Load templates from *directory* for :func:`render_template`."""
        self.template_env = create_environment(directory, auto_reload=self.config.debug)

    def set(self, name: str, value: Any) -> None:
        """Store a value available to every template."""
        with self._lock:
            self.globals = {**self.globals, name: value}

    def set_env(self, name: str, default: str) -> None:
        """Store environment variable *name* (or *default* when unset or empty)."""
        self.set(name, os.environ.get(name) or default)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def dispatch(self, request: Request, writer: ResponseWriter) -> Route | None:
        """
        Route one request. Returns the matched route, or ``None`` when
        the request fell through to the not-found response.
        """
        tracker = writer if isinstance(writer, TrackingWriter) else TrackingWriter(writer)
        request.scope["router"] = self
        routes = self._routes
        filters = self._filters

        for route in routes:
            values = route.match(request.method, request.path)
            if values is None:
                continue

            request.scope["route"] = route
            for name, value in zip(route.param_names, values):
                request.params.set(name, value)

            if route.auth is not None:
                allowed = await route.auth(request, tracker)
                if tracker.started:
                    return route
                if not allowed:
                    await unauthorized(tracker)
                    return route

            if await self._run_filters(filters, request, tracker):
                return route

            await route.handler(request, tracker)
            return route

        if self.config.filter_unmatched:
            await self._run_filters(filters, request, tracker)

        if not tracker.started:
            await not_found(tracker)
        return None

    @staticmethod
    async def _run_filters(
        filters: tuple[Filter, ...],
        request: Request,
        writer: TrackingWriter,
    ) -> bool:
        """Run *filters* in order; True if one of them started the response."""
        for filter in filters:
            await filter(request, writer)
            if writer.started:
                return True
        return False

    # -------------------------------------------------------------------------
    # ASGI Interface
    # -------------------------------------------------------------------------

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI application entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
        elif scope["type"] == "websocket":
            await send({"type": "websocket.close", "code": 1008})
        else:
            await self._get_app()(scope, receive, send)

    def add_middleware(
        self,
        factory: MiddlewareFactory,
        **options: Any,
    ) -> None:
        """Wrap the router in ASGI middleware. The first added is outermost."""
        self._middleware_stack.add(factory, **options)
        self._app = None

    def _get_app(self) -> ASGIApp:
        if self._app is None:
            self._app = self._middleware_stack.build()
        return self._app

    async def _handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(
            scope,
            receive,
            context=Context(),
            max_body_size=self.config.max_body_size,
        )
        writer = TrackingWriter(ASGIResponseWriter(send))
        started_at = time.perf_counter()
        failure: Exception | None = None

        try:
            await self.dispatch(request, writer)
            await writer.finish()
        except Exception as exc:
            failure = exc
            raise
        finally:
            if self.config.access_log:
                self._log_access(request, writer, started_at, failure)

    @staticmethod
    def _log_access(
        request: Request,
        writer: TrackingWriter,
        started_at: float,
        failure: Exception | None = None,
    ) -> None:
        duration = (time.perf_counter() - started_at) * 1000
        route = request.route
        status: Any = writer.status_code if writer.status_code is not None else "-"
        if failure is not None:
            # The error boundary answers unstarted responses and truncates
            # started ones.
            status = "aborted" if writer.started else getattr(failure, "status_code", 500)
        access_logger.info(
            "%s %s route=%s status=%s bytes=%d %.2fms",
            request.method,
            request.path,
            route.pattern if route else "-",
            status,
            writer.bytes_written,
            duration,
        )

    @staticmethod
    async def _handle_lifespan(receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    def run(
        self,
        host: str = "localhost",
        port: int = 8000,
        reload: bool = False,
        workers: int = 1,
        log_level: str = "info",
    ) -> None:
        """
        Run the router using uvicorn.

        Args:
            host: Host to bind to.
            port: Port to bind to.
            reload: Enable auto-reload.
            workers: Number of worker processes.
            log_level: Logging level.
        """
        import uvicorn

        uvicorn.run(
            self,
            host=host,
            port=port,
            reload=reload,
            workers=workers,
            log_level=log_level,
        )
