"""
Request-scoped storage.

A :class:`Context` is created by the router for every request it
dispatches and handed to filters and handlers on the request object.
It is never shared between requests.
"""

from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

T = TypeVar("T")


class Params(MutableMapping[str, str]):
    """Path parameters bound from the matched route. Last write wins."""

    __slots__ = ("_data",)

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Params({self._data!r})"

    def get(self, key: str, default: str = "") -> str:  # type: ignore[override]
        """Value for *key*, or the empty string when it is not bound."""
        return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        """Remove *key* if present."""
        self._data.pop(key, None)


class Values(MutableMapping[str, Any]):
    """
    Arbitrary values that live as long as the request, typically set by
    a filter (the authenticated user, a database handle) and read by the
    handler.
    """

    __slots__ = ("_data",)

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Values({self._data!r})"

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def get_str(self, key: str) -> str:
        """Value for *key* if it is a string, else the empty string."""
        value = self._data.get(key)
        return value if isinstance(value, str) else ""

    def get_as(self, key: str, kind: type[T]) -> T | None:
        """Value for *key* if it is an instance of *kind*, else ``None``."""
        value = self._data.get(key)
        return value if isinstance(value, kind) else None


@dataclass(slots=True)
class Context:
    """Per-request parameter and value store."""

    params: Params = field(default_factory=Params)
    values: Values = field(default_factory=Values)
