"""
ASGI middleware for Waymark.
These wrap the router as a whole; per-route filters are registered with
``Router.use``.
"""

from waymark.middleware.base import Middleware, MiddlewareStack
from waymark.middleware.error_handler import ErrorHandlerMiddleware

__all__ = [
    "Middleware",
    "MiddlewareStack",
    "ErrorHandlerMiddleware",
]
