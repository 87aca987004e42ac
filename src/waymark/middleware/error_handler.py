"""
Recovery boundary installed outermost around every Router.
"""

import logging
import uuid
from dataclasses import dataclass

from waymark.exceptions import HTTPException
from waymark.middleware.base import Middleware
from waymark.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("waymark.errors")


@dataclass(slots=True)
class _Progress:
    """How far the response got before something was raised."""

    started: bool = False
    finished: bool = False


class ErrorHandlerMiddleware(Middleware):
    """
    Turns exceptions escaping filters and handlers into JSON error
    responses and tags every response with an ``X-Request-ID`` header.

    ``HTTPException`` keeps its status, detail and headers; anything else
    becomes a generic 500 whose details only reach the log. When the
    status line is already on the wire the body is closed instead, and
    a finished response is left alone.
    """

    def __init__(self, app: ASGIApp, debug: bool = False) -> None:
        super().__init__(app)
        self.debug = debug

    async def process(self, scope: Scope, receive: Receive, send: Send) -> None:
        request_id = uuid.uuid4().hex
        scope["request_id"] = request_id
        progress = _Progress()

        async def tagged_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                progress.started = True
                message["headers"] = [
                    *message.get("headers", []),
                    (b"x-request-id", request_id.encode("ascii")),
                ]
            elif message["type"] == "http.response.body" and not message.get("more_body", False):
                progress.finished = True
            await send(message)

        try:
            await self.app(scope, receive, tagged_send)
        except HTTPException as exc:
            level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
            logger.log(
                level,
                "request_id=%s path=%s status=%d detail=%s",
                request_id, scope.get("path"), exc.status_code, exc.detail,
                exc_info=self.debug or exc.status_code >= 500,
            )
            await self._reply(tagged_send, progress, request_id, exc.status_code, exc.detail, exc.headers)
        except Exception:
            logger.exception("unhandled exception request_id=%s path=%s", request_id, scope.get("path"))
            await self._reply(tagged_send, progress, request_id, 500, "Internal Server Error")

    @staticmethod
    async def _reply(
        send: Send,
        progress: _Progress,
        request_id: str,
        status_code: int,
        detail: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        from waymark.response import JSONResponse
        from waymark.writer import ASGIResponseWriter

        if progress.finished:
            return
        if progress.started:
            await send({"type": "http.response.body", "body": b"", "more_body": False})
            return

        writer = ASGIResponseWriter(send)
        response = JSONResponse(
            {"error": detail, "status_code": status_code, "request_id": request_id},
            status_code=status_code,
            headers=headers,
        )
        await response(writer)
        await writer.finish()
