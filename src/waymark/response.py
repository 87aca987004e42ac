"""
Response objects for Waymark handlers.

A Response is a small value object that knows how to write itself into a
:class:`~waymark.writer.ResponseWriter`::

    async def show(request, writer):
        await JSONResponse({"id": request.params["id"]})(writer)

The module-level helpers (:func:`error`, :func:`not_found`,
:func:`redirect`) cover the replies the router itself sends.
"""

import json
import mimetypes
import os
from abc import ABC, abstractmethod
from collections.abc import Iterator
from http import HTTPStatus
from typing import Any

from waymark.config import DEFAULT_CHUNK_SIZE
from waymark.cookies import CookieOptions, format_set_cookie
from waymark.writer import ResponseWriter


class Response(ABC):
    """
    Base response. Subclasses set ``media_type`` and implement
    :meth:`render`; streaming responses override :meth:`__call__`.
    """

    media_type: str = "text/plain"
    charset: str = "utf-8"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.content = content
        self.status_code = status_code
        self.headers: dict[str, str] = {
            name.lower(): value for name, value in (headers or {}).items()
        }
        self.cookies: list[str] = []

    @property
    def content_type(self) -> str:
        """``media_type`` with a charset for textual types."""
        textual = self.media_type.startswith("text/") or self.media_type.endswith("json")
        return f"{self.media_type}; charset={self.charset}" if textual else self.media_type

    @abstractmethod
    def render(self) -> bytes:
        ...

    def set_header(self, name: str, value: str) -> "Response":
        self.headers[name.lower()] = value
        return self

    def set_cookie(
        self,
        name: str,
        value: str,
        options: CookieOptions | None = None,
    ) -> "Response":
        self.cookies.append(format_set_cookie(name, value, options))
        return self

    async def __call__(self, writer: ResponseWriter) -> None:
        await self.write_body(writer, self.render())

    async def write_body(self, writer: ResponseWriter, body: bytes) -> None:
        """Send headers, the status line and an already rendered *body*."""
        self.start(writer, content_length=len(body))
        await writer.write_header(self.status_code)
        if body:
            await writer.write(body)

    def start(self, writer: ResponseWriter, content_length: int | None = None) -> None:
        """Copy content type, headers and cookies onto *writer*."""
        writer.headers["content-type"] = self.content_type
        writer.headers.update(self.headers)
        if content_length is not None:
            writer.headers["content-length"] = str(content_length)
        for cookie in self.cookies:
            writer.add_cookie(cookie)

    def encode(self, value: Any) -> bytes:
        if value is None:
            return b""
        if isinstance(value, bytes):
            return value
        return str(value).encode(self.charset)


class TextResponse(Response):
    media_type = "text/plain"

    def render(self) -> bytes:
        return self.encode(self.content)


class HTMLResponse(TextResponse):
    media_type = "text/html"


class JSONResponse(Response):
    """
    JSON response. Output is compact unless ``indent`` is given; NaN and
    infinities are rejected with ``ValueError`` at render time.
    """

    media_type = "application/json"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        indent: int | None = None,
    ) -> None:
        super().__init__(content, status_code, headers)
        self.indent = indent

    def render(self) -> bytes:
        separators = (",", ":") if self.indent is None else None
        text = json.dumps(
            self.content,
            ensure_ascii=False,
            allow_nan=False,
            indent=self.indent,
            separators=separators,
        )
        return self.encode(text)


class RedirectResponse(Response):
    """Redirect to *url*. Defaults to 307 so the method is preserved."""

    def __init__(
        self,
        url: str,
        status_code: int = 307,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(None, status_code, headers)
        self.headers["location"] = url

    def render(self) -> bytes:
        return b""


class FileResponse(Response):
    """
    Streams a file from disk in ``chunk_size`` pieces.

    Raises:
        ValueError: If ``base_directory`` is given and the resolved path
                    lies outside it.
        FileNotFoundError: If the path is not a regular file.
    """

    def __init__(
        self,
        path: str,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        media_type: str | None = None,
        base_directory: str | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        super().__init__(None, status_code, headers)

        real_path = os.path.realpath(path)
        if base_directory is not None and not is_within(real_path, base_directory):
            raise ValueError(f"Path '{path}' resolves outside the allowed base directory")
        if not os.path.isfile(real_path):
            raise FileNotFoundError(f"File not found: {path}")

        self.path = real_path
        self.chunk_size = chunk_size
        self.media_type = media_type or mimetypes.guess_type(real_path)[0] or "application/octet-stream"
        self.headers["content-length"] = str(os.path.getsize(real_path))

    def render(self) -> bytes:
        # Streamed by __call__
        return b""

    def iter_chunks(self) -> Iterator[bytes]:
        with open(self.path, "rb") as handle:
            while chunk := handle.read(self.chunk_size):
                yield chunk

    async def __call__(self, writer: ResponseWriter) -> None:
        self.start(writer)
        await writer.write_header(self.status_code)
        for chunk in self.iter_chunks():
            await writer.write(chunk)


def is_within(path: str, directory: str) -> bool:
    """True if *path* resolves to *directory* or somewhere below it."""
    try:
        target = os.path.realpath(path)
        root = os.path.realpath(directory)
    except ValueError:
        # embedded NUL byte
        return False
    return target == root or target.startswith(root.rstrip(os.sep) + os.sep)


async def error(writer: ResponseWriter, status_code: int, detail: str | None = None) -> None:
    """
    Reply with *status_code* and a one-line plain-text body: *detail*,
    or the standard reason phrase when none is given.
    """
    if detail is None:
        try:
            detail = HTTPStatus(status_code).phrase
        except ValueError:
            detail = str(status_code)
    response = TextResponse(detail + "\n", status_code=status_code)
    response.set_header("x-content-type-options", "nosniff")
    await response(writer)


async def not_found(writer: ResponseWriter) -> None:
    await error(writer, 404, "404 page not found")


async def unauthorized(writer: ResponseWriter) -> None:
    await error(writer, 401)


async def redirect(writer: ResponseWriter, url: str, status_code: int = 302) -> None:
    await RedirectResponse(url, status_code=status_code)(writer)
