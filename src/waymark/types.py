"""
Type definitions for the Waymark router.
"""

from collections.abc import Awaitable, Callable, Mapping, MutableMapping
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from waymark.request import Request
    from waymark.writer import ResponseWriter

# ASGI Types
Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]
ASGIApp: TypeAlias = Callable[[Scope, Receive, Send], Awaitable[None]]

# Handler Types
Handler: TypeAlias = Callable[["Request", "ResponseWriter"], Awaitable[None]]
Filter: TypeAlias = Callable[["Request", "ResponseWriter"], Awaitable[None]]
AuthPredicate: TypeAlias = Callable[["Request", "ResponseWriter"], Awaitable[bool]]

# Header / Query / Form Types
Headers: TypeAlias = Mapping[str, str]
QueryParams: TypeAlias = Mapping[str, str | list[str]]
FormData: TypeAlias = Mapping[str, str | list[str]]
