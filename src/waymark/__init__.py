"""
Waymark - an ASGI request router

Ordered, first-match routing with named path parameters, filter chains
that stop as soon as a response starts, and per-route authorization.
"""

from waymark.auth import User, bearer_auth, cookie_auth, current_user, login_required, set_user
from waymark.config import RouterConfig
from waymark.context import Context, Params, Values
from waymark.cookies import CookieOptions, SecureCookie
from waymark.exceptions import HTTPException, RoutingError, TemplateRenderError
from waymark.negotiation import read_json, read_xml, serve_formatted, serve_json, serve_xml
from waymark.request import Request
from waymark.response import (
    FileResponse,
    HTMLResponse,
    JSONResponse,
    RedirectResponse,
    Response,
    TextResponse,
    error,
    not_found,
    redirect,
)
from waymark.routing import Method, Route, Router
from waymark.templating import render_template
from waymark.writer import ASGIResponseWriter, ResponseWriter, TrackingWriter

__version__ = "0.1.0"
__all__ = [
    "Router",
    "Route",
    "Method",
    "RouterConfig",
    "Request",
    "Context",
    "Params",
    "Values",
    "ResponseWriter",
    "ASGIResponseWriter",
    "TrackingWriter",
    "Response",
    "TextResponse",
    "HTMLResponse",
    "JSONResponse",
    "RedirectResponse",
    "FileResponse",
    "error",
    "not_found",
    "redirect",
    "serve_json",
    "serve_xml",
    "serve_formatted",
    "read_json",
    "read_xml",
    "render_template",
    "User",
    "set_user",
    "current_user",
    "login_required",
    "bearer_auth",
    "cookie_auth",
    "SecureCookie",
    "CookieOptions",
    "HTTPException",
    "RoutingError",
    "TemplateRenderError",
]
