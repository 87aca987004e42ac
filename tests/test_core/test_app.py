"""Tests for the Router as an ASGI application."""

import json
import logging

import pytest

from waymark.config import RouterConfig
from waymark.exceptions import NotFound
from waymark.middleware import Middleware
from waymark.negotiation import serve_json
from waymark.response import TextResponse
from waymark.routing import Router

from tests.conftest import ResponseCapture, make_receive, make_scope


class TestRequestHandling:
    async def test_handler_response_is_sent(self) -> None:
        router = Router()

        @router.get("/person/:last/:first")
        async def person(request, writer) -> None:
            await serve_json(writer, dict(request.params))

        cap = ResponseCapture()
        await router(make_scope(path="/person/anderson/thomas"), make_receive(), cap)

        assert cap.status == 200
        assert cap.headers["content-type"].startswith("application/json")
        assert json.loads(cap.body) == {"last": "anderson", "first": "thomas"}

    async def test_silent_handler_gets_empty_200(self) -> None:
        router = Router()
        router.post("/ping", lambda request, writer: _nothing())

        cap = ResponseCapture()
        await router(make_scope(method="POST", path="/ping"), make_receive(), cap)

        assert cap.status == 200
        assert cap.body == b""
        assert cap.messages[-1] == {"type": "http.response.body", "body": b"", "more_body": False}

    async def test_unmatched_path_is_404(self) -> None:
        router = Router()
        cap = ResponseCapture()
        await router(make_scope(path="/missing"), make_receive(), cap)

        assert cap.status == 404
        assert cap.body == b"404 page not found\n"

    async def test_status_sent_once(self) -> None:
        router = Router()

        @router.get("/")
        async def twice(request, writer) -> None:
            await writer.write_header(201)
            await writer.write_header(500)
            await writer.write("ok")

        cap = ResponseCapture()
        await router(make_scope(), make_receive(), cap)

        assert cap.starts == 1
        assert cap.status == 201
        assert cap.body == b"ok"

    async def test_fresh_context_per_request(self) -> None:
        router = Router()
        seen: list[object] = []

        @router.get("/:name")
        async def handler(request, writer) -> None:
            seen.append(request.values.get("previous"))
            request.values.set("previous", request.params["name"])

        await router(make_scope(path="/a"), make_receive(), ResponseCapture())
        await router(make_scope(path="/b"), make_receive(), ResponseCapture())
        assert seen == [None, None]

    async def test_request_id_header_added(self) -> None:
        router = Router()
        router.get("/", lambda request, writer: TextResponse("hi")(writer))

        cap = ResponseCapture()
        await router(make_scope(), make_receive(), cap)
        assert "x-request-id" in cap.headers


class TestErrorRecovery:
    async def test_http_exception_becomes_json_error(self) -> None:
        router = Router()

        @router.get("/items/:id")
        async def show(request, writer) -> None:
            raise NotFound(f"item {request.params['id']} not found")

        cap = ResponseCapture()
        await router(make_scope(path="/items/9"), make_receive(), cap)

        assert cap.status == 404
        body = json.loads(cap.body)
        assert body["error"] == "item 9 not found"
        assert body["request_id"] == cap.headers["x-request-id"]

    async def test_unexpected_exception_becomes_500(self) -> None:
        router = Router()

        @router.get("/")
        async def boom(request, writer) -> None:
            raise RuntimeError("database password is hunter2")

        cap = ResponseCapture()
        await router(make_scope(), make_receive(), cap)

        assert cap.status == 500
        assert b"hunter2" not in cap.body

    async def test_exception_after_start_closes_body(self) -> None:
        router = Router()

        @router.get("/")
        async def partial(request, writer) -> None:
            await writer.write("partial")
            raise RuntimeError("late failure")

        cap = ResponseCapture()
        await router(make_scope(), make_receive(), cap)

        assert cap.starts == 1
        assert cap.status == 200
        assert cap.body == b"partial"
        assert cap.messages[-1]["more_body"] is False

    async def test_oversized_body_is_413(self) -> None:
        router = Router(RouterConfig(max_body_size=4))

        @router.post("/upload")
        async def upload(request, writer) -> None:
            await request.body()

        cap = ResponseCapture()
        await router(make_scope(method="POST", path="/upload"), make_receive(b"0123456789"), cap)
        assert cap.status == 413


class TestAccessLog:
    async def test_one_line_per_request(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router()
        router.get("/user/:id", lambda request, writer: TextResponse("neo")(writer))

        with caplog.at_level(logging.INFO, logger="waymark.access"):
            await router(make_scope(path="/user/7"), make_receive(), ResponseCapture())

        records = [r for r in caplog.records if r.name == "waymark.access"]
        assert len(records) == 1
        message = records[0].getMessage()
        assert message.startswith("GET /user/7 route=/user/:id status=200 bytes=3 ")

    async def test_unmatched_request_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router()

        with caplog.at_level(logging.INFO, logger="waymark.access"):
            await router(make_scope(path="/nope"), make_receive(), ResponseCapture())

        message = caplog.records[-1].getMessage()
        assert "route=- status=404" in message

    async def test_failed_handler_keeps_matched_route(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router()

        @router.get("/")
        async def partial(request, writer) -> None:
            await writer.write("partial")
            raise RuntimeError("boom")

        with caplog.at_level(logging.INFO, logger="waymark.access"):
            await router(make_scope(), make_receive(), ResponseCapture())

        records = [r for r in caplog.records if r.name == "waymark.access"]
        assert records[-1].getMessage().startswith("GET / route=/ status=aborted bytes=7 ")

    async def test_raised_http_error_status_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router()

        @router.get("/item/:id")
        async def missing(request, writer) -> None:
            raise NotFound()

        with caplog.at_level(logging.INFO, logger="waymark.access"):
            await router(make_scope(path="/item/3"), make_receive(), ResponseCapture())

        records = [r for r in caplog.records if r.name == "waymark.access"]
        assert "route=/item/:id status=404 bytes=0" in records[-1].getMessage()

    async def test_disabled_by_config(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router(RouterConfig(access_log=False))

        with caplog.at_level(logging.INFO, logger="waymark.access"):
            await router(make_scope(), make_receive(), ResponseCapture())

        assert not [r for r in caplog.records if r.name == "waymark.access"]


class TestMiddleware:
    async def test_added_middleware_wraps_router(self) -> None:
        class Stamp(Middleware):
            def __init__(self, app, value: str = "x") -> None:
                super().__init__(app)
                self.value = value

            async def process(self, scope, receive, send) -> None:
                async def stamped(message) -> None:
                    if message["type"] == "http.response.start":
                        message["headers"] = [
                            *message.get("headers", []),
                            (b"x-stamp", self.value.encode()),
                        ]
                    await send(message)
                await self.app(scope, receive, stamped)

        router = Router()
        router.get("/", lambda request, writer: TextResponse("hi")(writer))
        router.add_middleware(Stamp, value="waymark")

        cap = ResponseCapture()
        await router(make_scope(), make_receive(), cap)
        assert cap.headers["x-stamp"] == "waymark"


class TestProtocolScopes:
    async def test_lifespan(self) -> None:
        messages = iter([
            {"type": "lifespan.startup"},
            {"type": "lifespan.shutdown"},
        ])

        async def receive():
            return next(messages)

        cap = ResponseCapture()
        await Router()(make_scope(scope_type="lifespan"), receive, cap)
        assert [m["type"] for m in cap.messages] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    async def test_websocket_is_refused(self) -> None:
        cap = ResponseCapture()
        await Router()(make_scope(scope_type="websocket"), make_receive(), cap)
        assert cap.messages == [{"type": "websocket.close", "code": 1008}]


async def _nothing() -> None:
    return None
