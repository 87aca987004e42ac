"""
Cookie helpers for Waymark.
Signed, expiring cookie values plus Cookie / Set-Cookie formatting.
"""

import base64
import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import TYPE_CHECKING

from waymark.exceptions import CookieError

if TYPE_CHECKING:
    from waymark.request import Request
    from waymark.writer import ResponseWriter

# Expires value that makes a browser drop a cookie immediately
EPOCH: datetime = datetime(1970, 1, 1, tzinfo=timezone.utc)

_SAMESITE_VALUES: frozenset[str] = frozenset({"strict", "lax", "none"})


@dataclass(frozen=True, slots=True)
class CookieOptions:
    """Set-Cookie attributes. Secure, HttpOnly and SameSite=Lax by default."""

    max_age: int | None = None  # seconds; negative deletes the cookie
    expires: datetime | str | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = True
    httponly: bool = True
    samesite: str | None = "lax"

    def __post_init__(self) -> None:
        if self.samesite is not None and self.samesite.lower() not in _SAMESITE_VALUES:
            raise CookieError(f"Invalid SameSite value: {self.samesite!r}")

    def attributes(self) -> list[str]:
        """Attributes in Set-Cookie order."""
        expires = self.expires
        if isinstance(expires, datetime):
            expires = format_datetime(expires.astimezone(timezone.utc), usegmt=True)

        flags = [
            ("Max-Age", None if self.max_age is None else str(self.max_age)),
            ("Expires", expires or None),
            ("Path", self.path or None),
            ("Domain", self.domain or None),
            ("SameSite", self.samesite.capitalize() if self.samesite else None),
        ]
        attributes = [f"{name}={value}" for name, value in flags if value is not None]
        if self.secure:
            attributes.append("Secure")
        if self.httponly:
            attributes.append("HttpOnly")
        return attributes


class SecureCookie:
    """
    Signs and timestamps values so they cannot be forged.

    A signed value has the form ``<expires>:<value>:<signature>`` where
    ``expires`` is a Unix timestamp (``0`` for no expiry) and the signature
    is an HMAC-SHA256 over the first two fields.
    """

    def __init__(self, secret_key: str | bytes) -> None:
        key = secret_key.encode("utf-8") if isinstance(secret_key, str) else secret_key
        if not key:
            raise CookieError("secret_key must not be empty")
        self._key = key

    def sign(self, value: str, expires: datetime | None = None) -> str:
        """Sign *value*, valid until *expires* (forever when ``None``)."""
        deadline = 0 if expires is None else int(expires.timestamp())
        payload = f"{deadline}:{value}"
        return f"{payload}:{self._create_signature(payload)}"

    def unsign(self, signed_value: str) -> str | None:
        """
        Verify signature and expiry and return the original value.
        Returns None if the value is malformed, forged or expired.
        """
        try:
            return self.unsign_strict(signed_value)
        except CookieError:
            return None

    def unsign_strict(self, signed_value: str) -> str:
        """Like :meth:`unsign`, but raises ``CookieError`` with the reason."""
        deadline, first, rest = signed_value.partition(":")
        value, second, signature = rest.rpartition(":")
        if not (first and second):
            raise CookieError("malformed signed value")

        if not hmac.compare_digest(signature, self._create_signature(f"{deadline}:{value}")):
            raise CookieError("signature mismatch")

        if not deadline.isdigit():
            raise CookieError("malformed expiry")
        if int(deadline) and time.time() > int(deadline):
            raise CookieError("signed value expired")

        return value

    def _create_signature(self, payload: str) -> str:
        digest = hmac.new(self._key, payload.encode("utf-8"), hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

    @staticmethod
    def generate_secret_key(length: int = 32) -> str:
        """Generate a cryptographically secure secret key."""
        return secrets.token_urlsafe(length)


def parse_cookies(cookie_header: str) -> dict[str, str]:
    """Parse a Cookie header. Pairs without ``=`` are skipped."""
    pairs = (item.partition("=") for item in cookie_header.split(";"))
    return {
        name.strip(): value.strip()
        for name, sep, value in pairs
        if sep and name.strip()
    }


def format_set_cookie(
    name: str,
    value: str,
    options: CookieOptions | None = None,
) -> str:
    """Format a Set-Cookie header value."""
    return "; ".join([f"{name}={value}", *(options or CookieOptions()).attributes()])


def set_cookie(
    writer: "ResponseWriter",
    name: str,
    value: str,
    options: CookieOptions | None = None,
) -> None:
    """Queue a cookie on the response. Must run before the status is written."""
    writer.add_cookie(format_set_cookie(name, value, options))


def clear_cookie(writer: "ResponseWriter", request: "Request", name: str) -> None:
    """Delete the cookie *name* on the client."""
    options = CookieOptions(
        max_age=-1,
        expires=EPOCH,
        domain=request.host.split(":", 1)[0] or None,
    )
    writer.add_cookie(format_set_cookie(name, "deleted", options))
