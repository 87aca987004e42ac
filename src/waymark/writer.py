"""
Response writers.

Handlers and filters write to a :class:`ResponseWriter`: headers first,
then a status code (once), then any number of body chunks.
:class:`ASGIResponseWriter` turns those calls into ASGI messages, and
:class:`TrackingWriter` wraps any writer to record whether the response
has started, which is how the router decides to stop processing.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import MutableMapping

from waymark.types import Send

logger = logging.getLogger("waymark.routing")


class ResponseWriter(ABC):
    """Outbound response channel."""

    @property
    @abstractmethod
    def headers(self) -> MutableMapping[str, str]:
        """Headers sent with the status line. Changes after it is sent are ignored."""
        ...

    @abstractmethod
    def add_cookie(self, set_cookie: str) -> None:
        """Queue a ``Set-Cookie`` header value. Several may be sent."""
        ...

    @abstractmethod
    async def write_header(self, status_code: int) -> None:
        """Send the status line and headers."""
        ...

    @abstractmethod
    async def write(self, data: bytes | str) -> int:
        """Append to the body, sending a 200 status first if none was sent."""
        ...

    @abstractmethod
    async def finish(self) -> None:
        """Complete the response."""
        ...


class ASGIResponseWriter(ResponseWriter):
    """
    ResponseWriter over an ASGI ``send`` callable.

    ``write_header`` emits ``http.response.start``; ``write`` emits
    ``http.response.body`` with ``more_body=True``; ``finish`` closes
    the body.
    """

    charset: str = "utf-8"

    def __init__(self, send: Send) -> None:
        self._send = send
        self._headers: dict[str, str] = {}
        self._cookies: list[str] = []
        self._header_sent = False
        self._finished = False

    @property
    def headers(self) -> MutableMapping[str, str]:
        return self._headers

    def add_cookie(self, set_cookie: str) -> None:
        self._cookies.append(set_cookie)

    async def write_header(self, status_code: int) -> None:
        if self._header_sent:
            logger.warning("superfluous write_header(%d) ignored", status_code)
            return
        self._header_sent = True

        headers: list[tuple[bytes, bytes]] = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in self._headers.items()
        ]
        for cookie in self._cookies:
            headers.append((b"set-cookie", cookie.encode("latin-1")))

        await self._send({
            "type": "http.response.start",
            "status": status_code,
            "headers": headers,
        })

    async def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode(self.charset)
        if not self._header_sent:
            await self.write_header(200)
        await self._send({
            "type": "http.response.body",
            "body": data,
            "more_body": True,
        })
        return len(data)

    async def finish(self) -> None:
        if self._finished:
            return
        if not self._header_sent:
            await self.write_header(200)
        self._finished = True
        await self._send({
            "type": "http.response.body",
            "body": b"",
            "more_body": False,
        })


class TrackingWriter(ResponseWriter):
    """
    Decorator around another ResponseWriter that records what has been
    written to it.

    ``started`` becomes true on the first ``write_header`` or ``write``
    and never reverts. ``status_code`` is the last status passed to
    ``write_header`` (200 when the body was written without one), even
    if the wrapped writer ignored it.
    """

    def __init__(self, writer: ResponseWriter) -> None:
        self._writer = writer
        self.started: bool = False
        self.status_code: int | None = None
        self.bytes_written: int = 0

    @property
    def wrapped(self) -> ResponseWriter:
        return self._writer

    @property
    def headers(self) -> MutableMapping[str, str]:
        return self._writer.headers

    def add_cookie(self, set_cookie: str) -> None:
        self._writer.add_cookie(set_cookie)

    async def write_header(self, status_code: int) -> None:
        self.status_code = status_code
        self.started = True
        await self._writer.write_header(status_code)

    async def write(self, data: bytes | str) -> int:
        if self.status_code is None:
            self.status_code = 200
        self.started = True
        written = await self._writer.write(data)
        self.bytes_written += written
        return written

    async def finish(self) -> None:
        if self.status_code is None:
            self.status_code = 200
        self.started = True
        await self._writer.finish()
