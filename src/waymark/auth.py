"""
Request users and authorization predicates.

A predicate has the signature ``async (request, writer) -> bool`` and is
attached to a route with ``auth=``. Returning ``False`` makes the router
answer 401; writing to the response (a redirect to a login page, say)
ends the request with whatever was written.

    router.get("/admin", admin_page, auth=bearer_auth(SECRET))
"""

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qs, urlencode

import jwt

from waymark.cookies import CookieOptions, SecureCookie, set_cookie
from waymark.request import Request
from waymark.types import AuthPredicate
from waymark.writer import ResponseWriter

# Key used to store the user in the request values
USER_KEY: str = "_user"

DEFAULT_COOKIE_NAME: str = "waymark_user"

_RESERVED_FIELDS: tuple[str, ...] = ("id", "name", "email", "photo")


@dataclass
class User:
    """An application user."""

    id: str  # the unique permanent ID of the user
    name: str = ""  # the human-readable ID of the user
    email: str = ""
    photo: str = ""

    federated_identity: str = ""
    federated_provider: str = ""

    # additional, custom attributes
    attrs: dict[str, str] = field(default_factory=dict)

    def encode(self) -> str:
        """Encode the user as a URL query string."""
        values: dict[str, str] = dict(self.attrs)
        values.update(id=self.id, name=self.name, email=self.email, photo=self.photo)
        return urlencode(sorted(values.items()))

    @classmethod
    def decode(cls, value: str) -> "User | None":
        """Create a user from a URL query string, or ``None`` if it has no id."""
        try:
            parsed = parse_qs(value, keep_blank_values=True, strict_parsing=True)
        except ValueError:
            return None
        values = {key: items[0] for key, items in parsed.items()}
        if not values.get("id"):
            return None
        return cls(
            id=values["id"],
            name=values.get("name", ""),
            email=values.get("email", ""),
            photo=values.get("photo", ""),
            attrs={k: v for k, v in values.items() if k not in _RESERVED_FIELDS},
        )


def set_user(request: Request, user: User) -> None:
    """Set the current user for the rest of this request."""
    request.values.set(USER_KEY, user)


def current_user(request: Request) -> User | None:
    """The user set for this request, or ``None`` if not signed in."""
    return request.values.get_as(USER_KEY, User)


async def login_required(request: Request, writer: ResponseWriter) -> bool:
    """Allow the request only when an earlier step has set a user."""
    return current_user(request) is not None


def bearer_auth(
    secret_key: str,
    algorithm: str = "HS256",
    token_prefix: str = "Bearer",
) -> AuthPredicate:
    """
    Predicate accepting requests with a valid JWT in the ``Authorization``
    header. The ``sub`` claim becomes ``User.id``.
    """

    async def predicate(request: Request, writer: ResponseWriter) -> bool:
        auth_header = request.get_header("authorization")
        if not auth_header:
            return False

        try:
            scheme, token = auth_header.split(" ", 1)
        except ValueError:
            return False

        if scheme.lower() != token_prefix.lower():
            return False

        try:
            payload: dict[str, Any] = jwt.decode(token, secret_key, algorithms=[algorithm])
        except jwt.InvalidTokenError:
            return False

        subject = payload.get("sub")
        if not subject:
            return False

        set_user(request, User(
            id=str(subject),
            name=payload.get("name", ""),
            email=payload.get("email", ""),
        ))
        return True

    return predicate


def create_token(
    user: User,
    secret_key: str,
    expires: datetime | None = None,
    algorithm: str = "HS256",
) -> str:
    """Issue a JWT that :func:`bearer_auth` accepts for *user*."""
    payload: dict[str, Any] = {
        "sub": user.id,
        "name": user.name,
        "email": user.email,
        "iat": datetime.now(timezone.utc),
    }
    if expires is not None:
        payload["exp"] = expires
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def cookie_auth(secret_key: str, cookie_name: str = DEFAULT_COOKIE_NAME) -> AuthPredicate:
    """Predicate accepting requests that carry a user cookie set by :func:`login`."""
    signer = SecureCookie(secret_key)

    async def predicate(request: Request, writer: ResponseWriter) -> bool:
        raw = request.get_cookie(cookie_name)
        if not raw:
            return False

        try:
            signed = base64.urlsafe_b64decode(raw.encode("ascii")).decode("utf-8")
        except (ValueError, binascii.Error, UnicodeError):
            return False

        value = signer.unsign(signed)
        if value is None:
            return False

        user = User.decode(value)
        if user is None:
            return False

        set_user(request, user)
        return True

    return predicate


def login(
    writer: ResponseWriter,
    user: User,
    secret_key: str,
    expires: datetime | None = None,
    cookie_name: str = DEFAULT_COOKIE_NAME,
    options: CookieOptions | None = None,
) -> None:
    """Store *user* in a signed cookie. Call before writing the status."""
    signed = SecureCookie(secret_key).sign(user.encode(), expires)
    encoded = base64.urlsafe_b64encode(signed.encode("utf-8")).decode("ascii")
    set_cookie(writer, cookie_name, encoded, options)
