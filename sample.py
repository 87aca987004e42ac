"""
Waymark - sample application

This demonstrates the basic usage of the Waymark router.
Run with: uv run uvicorn sample:router --reload
"""


import logging
from datetime import datetime, timedelta, timezone

from waymark import (
    Request,
    ResponseWriter,
    Router,
    RouterConfig,
    User,
    bearer_auth,
    current_user,
    error,
    serve_formatted,
    serve_json,
)
from waymark.auth import create_token
from waymark.exceptions import BadRequest
from waymark.negotiation import read_json

# =============================================================================
# Router Setup
# =============================================================================

logger = logging.getLogger("waymark.sample")

SECRET_KEY = "{YOUR_SECRET_HERE}"

router: Router = Router(RouterConfig.from_env())
router.set_env("SITE_NAME", "Waymark Demo")


# =============================================================================
# Filters (run in order; the first one to write a response stops the chain)
# =============================================================================


async def require_json(request: Request, writer: ResponseWriter) -> None:
    """Reject write requests without a JSON body."""
    if request.method in ("POST", "PUT", "PATCH") and "json" not in request.content_type:
        await error(writer, 415)


async def load_account(request: Request, writer: ResponseWriter) -> None:
    """Look up the account named in the path."""
    request.values.set("account", {"id": request.params["id"], "plan": "free"})


router.use(require_json)
router.use_if_param("id", load_account)


# =============================================================================
# Routes
# =============================================================================


@router.get("/", name="home")
async def home(request: Request, writer: ResponseWriter) -> None:
    await serve_json(writer, {
        "message": "Hello, World!",
        "site": router.globals["SITE_NAME"],
    })


@router.post("/login")
async def login(request: Request, writer: ResponseWriter) -> None:
    data = await read_json(request) or {}
    if data.get("username") != "admin" or data.get("password") != "password":
        raise BadRequest("Invalid credentials")

    # In a real application, verify credentials against a user store
    user = User(id="1", name="admin")
    expires = datetime.now(timezone.utc) + timedelta(hours=1)
    await serve_json(writer, {"token": create_token(user, SECRET_KEY, expires)})


@router.get("/me", auth=bearer_auth(SECRET_KEY))
async def me(request: Request, writer: ResponseWriter) -> None:
    user = current_user(request)
    await serve_json(writer, {"id": user.id, "name": user.name})


# Register specific patterns before the general ones: the first match wins
@router.get("/accounts/new")
async def new_account_form(request: Request, writer: ResponseWriter) -> None:
    await serve_json(writer, {"fields": ["name", "email"]})


@router.get("/accounts/:id([0-9]+)", name="account")
async def show_account(request: Request, writer: ResponseWriter) -> None:
    """Answers JSON or XML depending on the Accept header."""
    await serve_formatted(request, writer, request.values.get("account"))


@router.get("/files/:path(.+)")
async def show_path(request: Request, writer: ResponseWriter) -> None:
    await serve_json(writer, {"path": request.params["path"]})


router.static("/static", "static")


# =============================================================================
# Main Entry Point
# =============================================================================


def main() -> None:
    """Run the sample router."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    logger.info("account 42 lives at %s", router.url_for("account", id=42))

    router.run(
        host="127.0.0.1",
        port=8000,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
