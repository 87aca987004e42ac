"""
Waymark exceptions.
Registration problems are raised eagerly; HTTP errors carry a status code.
"""

from http import HTTPStatus


class WaymarkException(Exception):
    """Base exception for all Waymark errors."""

    def __init__(self, message: str = "An error occurred") -> None:
        self.message = message
        super().__init__(message)


class HTTPException(WaymarkException):
    """
    An error with an HTTP status. Raised from a handler or filter, it is
    turned into a JSON error response by the error-handling middleware.
    The detail defaults to the status reason phrase.
    """

    status_code: int = 500

    def __init__(
        self,
        status_code: int | None = None,
        detail: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail or HTTPStatus(self.status_code).phrase
        self.headers = dict(headers or {})
        super().__init__(self.detail)


class _StatusError(HTTPException):
    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(None, detail, headers)


class BadRequest(_StatusError):
    status_code = 400


class Unauthorized(_StatusError):
    """401, challenging for a bearer token unless other headers are given."""

    status_code = 401

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(detail, {"WWW-Authenticate": "Bearer", **(headers or {})})


class Forbidden(_StatusError):
    status_code = 403


class NotFound(_StatusError):
    status_code = 404


class PayloadTooLarge(_StatusError):
    status_code = 413


class InternalServerError(_StatusError):
    status_code = 500


class RoutingError(WaymarkException):
    """Malformed route pattern, unknown method or unknown route name."""


class TemplateRenderError(WaymarkException):
    """Template lookup or rendering failed."""


class CookieError(WaymarkException):
    """Malformed, forged or expired signed cookie, or invalid cookie options."""
