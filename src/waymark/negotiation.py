"""
JSON / XML helpers and ``Accept``-based format selection.
"""

import json
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any

from waymark.exceptions import BadRequest
from waymark.request import Request
from waymark.response import JSONResponse, Response, error
from waymark.writer import ResponseWriter

logger = logging.getLogger("waymark.negotiation")

APPLICATION_JSON: str = "application/json"
APPLICATION_XML: str = "application/xml"
TEXT_XML: str = "text/xml"

XML_ROOT_TAG: str = "response"
XML_ITEM_TAG: str = "item"

_TAG_NAME = re.compile(r"[^\W\d][\w.-]*")


class XMLResponse(Response):
    """XML response built with ElementTree."""

    media_type = "text/xml"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        root: str = XML_ROOT_TAG,
    ) -> None:
        super().__init__(content, status_code, headers)
        self._root = root

    def render(self) -> bytes:
        element = to_element(self._root, self.content)
        return ET.tostring(element, encoding="utf-8", xml_declaration=True)


def to_element(tag: str, value: Any) -> ET.Element:
    """
    Convert *value* into an Element named *tag*.

    Mappings become child elements per key, sequences become repeated
    ``<item>`` children, ``None`` becomes an empty element and anything
    else becomes text. Objects with a ``to_xml()`` method returning an
    Element are used as-is.
    Keys that are not valid element names raise ``ValueError``.
    """
    to_xml = getattr(value, "to_xml", None)
    if callable(to_xml):
        element = to_xml()
        if not isinstance(element, ET.Element):
            raise TypeError(f"{type(value).__name__}.to_xml() must return an Element")
        return element

    if not _TAG_NAME.fullmatch(tag):
        raise ValueError(f"{tag!r} is not a valid XML element name")
    element = ET.Element(tag)
    if value is None:
        return element
    if isinstance(value, dict):
        for key, child in value.items():
            element.append(to_element(str(key), child))
    elif isinstance(value, (list, tuple, set, frozenset)):
        for child in value:
            element.append(to_element(XML_ITEM_TAG, child))
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = str(value)
    return element


async def serve_json(writer: ResponseWriter, value: Any, *, status_code: int = 200) -> None:
    """Reply with the JSON representation of *value*."""
    await _serve(writer, JSONResponse(value, status_code=status_code))


async def serve_xml(writer: ResponseWriter, value: Any, *, status_code: int = 200) -> None:
    """Reply with the XML representation of *value*."""
    await _serve(writer, XMLResponse(value, status_code=status_code))


async def serve_formatted(
    request: Request,
    writer: ResponseWriter,
    value: Any,
    *,
    status_code: int = 200,
) -> None:
    """Reply in the format named by the request's ``Accept`` header."""
    if wants_xml(request.get_header("accept", "") or ""):
        await serve_xml(writer, value, status_code=status_code)
    else:
        await serve_json(writer, value, status_code=status_code)


def wants_xml(accept: str) -> bool:
    """
    JSON for ``application/json``, an empty header or anything unknown;
    XML for ``application/xml`` or ``text/xml``, alone or within a list.
    """
    accept = accept.strip()
    if accept == APPLICATION_JSON or not accept:
        return False
    if accept in (APPLICATION_XML, TEXT_XML):
        return True
    return APPLICATION_XML in accept or TEXT_XML in accept


async def read_json(request: Request) -> Any:
    """Parse the request body as JSON."""
    try:
        return await request.json()
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise BadRequest(f"Malformed JSON body: {exc}") from exc


async def read_xml(request: Request) -> ET.Element:
    """Parse the request body as XML and return the root element."""
    body = await request.body()
    try:
        return ET.fromstring(body)
    except ET.ParseError as exc:
        raise BadRequest(f"Malformed XML body: {exc}") from exc


async def _serve(writer: ResponseWriter, response: Response) -> None:
    # Render before touching the writer so a serialization failure can
    # still turn into a clean 500.
    try:
        body = response.render()
    except (TypeError, ValueError) as exc:
        logger.error("serialization failed: %s", exc)
        await error(writer, 500, str(exc))
        return
    await response.write_body(writer, body)
