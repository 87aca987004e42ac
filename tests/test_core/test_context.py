"""Tests for waymark.context: Params, Values and Context."""

from waymark.context import Context, Params, Values


class TestParams:
    def test_missing_key_is_empty_string(self) -> None:
        assert Params().get("id") == ""

    def test_set_and_get(self) -> None:
        params = Params()
        params.set("id", "42")
        assert params.get("id") == "42"
        assert params["id"] == "42"

    def test_last_write_wins(self) -> None:
        params = Params()
        params.set("id", "a")
        params.set("id", "b")
        assert params.get("id") == "b"
        assert len(params) == 1

    def test_delete_missing_is_noop(self) -> None:
        params = Params({"id": "1"})
        params.delete("other")
        params.delete("id")
        assert dict(params) == {}

    def test_is_a_mapping(self) -> None:
        params = Params({"a": "1", "b": "2"})
        assert dict(params) == {"a": "1", "b": "2"}
        assert "a" in params


class TestValues:
    def test_arbitrary_values(self) -> None:
        values = Values()
        handle = object()
        values.set("db", handle)
        assert values["db"] is handle

    def test_get_str(self) -> None:
        values = Values()
        values.set("name", "neo")
        values.set("count", 3)
        assert values.get_str("name") == "neo"
        assert values.get_str("count") == ""
        assert values.get_str("missing") == ""

    def test_get_as(self) -> None:
        values = Values()
        values.set("count", 3)
        assert values.get_as("count", int) == 3
        assert values.get_as("count", str) is None
        assert values.get_as("missing", int) is None

    def test_delete(self) -> None:
        values = Values()
        values.set("k", 1)
        values.delete("k")
        values.delete("k")
        assert "k" not in values


class TestContext:
    def test_contexts_are_independent(self) -> None:
        first = Context()
        second = Context()
        first.params.set("id", "1")
        first.values.set("user", "neo")
        assert len(second.params) == 0
        assert len(second.values) == 0
