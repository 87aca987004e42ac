"""
Jinja2 template rendering.

Rendering failures are raised as :class:`TemplateRenderError` before
anything is written, so the caller (or the error-handling middleware)
decides what the client sees.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from waymark.exceptions import TemplateRenderError
from waymark.request import Request
from waymark.response import HTMLResponse
from waymark.writer import ResponseWriter

logger = logging.getLogger("waymark.templating")


def create_environment(template_dir: str | Path, auto_reload: bool = False) -> Environment:
    """Build an async-capable Environment loading from *template_dir*."""
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml"]),
        enable_async=True,
        auto_reload=auto_reload,
    )


async def render(
    env: Environment,
    name: str,
    data: Mapping[str, Any] | None = None,
    globals: Mapping[str, Any] | None = None,
) -> str:
    """
    Render the template *name*. Router *globals* are applied over
    *data*, so a global wins when both define a key.
    """
    context: dict[str, Any] = dict(data or {})
    context.update(globals or {})
    try:
        template = env.get_template(name)
        return await template.render_async(context)
    except TemplateError as exc:
        logger.error("failed to render template %s: %s", name, exc)
        raise TemplateRenderError(f"Failed to render template {name!r}: {exc}") from exc


async def render_template(
    request: Request,
    writer: ResponseWriter,
    name: str,
    data: Mapping[str, Any] | None = None,
    status_code: int = 200,
) -> None:
    """
    Render *name* with the router's templates and global values and
    write it as ``text/html``.

    Raises:
        TemplateRenderError: When no templates are configured or the
                             template fails to load or render.
    """
    router = request.router
    env = getattr(router, "template_env", None)
    if env is None:
        raise TemplateRenderError("No template directory configured")

    html = await render(env, name, data, router.globals)
    await HTMLResponse(html, status_code=status_code)(writer)
