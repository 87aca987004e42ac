"""Tests for waymark.filters: parameter- and path-gated filters."""

from tests.conftest import RecordingWriter, make_request
from waymark.filters import param_filter, path_filter
from waymark.routing import Router


def counting(calls: list[str], label: str):
    async def inner(request, writer) -> None:
        calls.append(label)
    return inner


class TestParamFilter:
    async def test_runs_when_param_bound(self) -> None:
        calls: list[str] = []
        gated = param_filter(":id", counting(calls, "hit"))

        request = make_request(path="/user/1")
        request.params.set("id", "1")
        await gated(request, RecordingWriter())
        assert calls == ["hit"]

    async def test_skipped_when_param_missing(self) -> None:
        calls: list[str] = []
        gated = param_filter("id", counting(calls, "hit"))

        await gated(make_request(), RecordingWriter())
        assert calls == []

    async def test_skipped_when_param_empty(self) -> None:
        calls: list[str] = []
        gated = param_filter("id", counting(calls, "hit"))

        request = make_request()
        request.params.set("id", "")
        await gated(request, RecordingWriter())
        assert calls == []

    async def test_through_router(self) -> None:
        calls: list[str] = []
        router = Router()
        router.get("/user/:id", counting(calls, "handler"))
        router.get("/users", counting(calls, "list"))
        router.use_if_param("id", counting(calls, "load-user"))

        await router.dispatch(make_request(path="/user/5"), RecordingWriter())
        await router.dispatch(make_request(path="/users"), RecordingWriter())
        assert calls == ["load-user", "handler", "list"]


class TestPathFilter:
    async def test_runs_below_prefix(self) -> None:
        calls: list[str] = []
        gated = path_filter("/admin/*", counting(calls, "hit"))

        await gated(make_request(path="/admin/users"), RecordingWriter())
        await gated(make_request(path="/public"), RecordingWriter())
        assert calls == ["hit"]

    async def test_unanchored_match(self) -> None:
        calls: list[str] = []
        gated = path_filter("/admin/*", counting(calls, "hit"))

        await gated(make_request(path="/v1/admin/users"), RecordingWriter())
        assert calls == ["hit"]

    async def test_gated_filter_can_short_circuit(self) -> None:
        calls: list[str] = []
        router = Router()
        router.get("/admin/:page", counting(calls, "handler"))
        router.get("/home", counting(calls, "home"))

        async def deny(request, writer) -> None:
            calls.append("deny")
            await writer.write_header(403)

        router.use_if_path("/admin/*", deny)

        blocked = RecordingWriter()
        await router.dispatch(make_request(path="/admin/settings"), blocked)
        await router.dispatch(make_request(path="/home"), RecordingWriter())

        assert calls == ["deny", "home"]
        assert blocked.status == 403
