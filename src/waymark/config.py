"""Router configuration.

RouterConfig is a frozen dataclass: immutable after creation, loaded from
keyword arguments or from the environment::

    config = RouterConfig(access_log=False, filter_unmatched=True)
    config = RouterConfig.from_env()
"""

import os
from dataclasses import dataclass

# Default maximum request body size: 1 MB
DEFAULT_MAX_BODY_SIZE: int = 1_048_576

# Default chunk size for static files: 64 KB
DEFAULT_CHUNK_SIZE: int = 65_536

_TRUE_VALUES: frozenset[str] = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: frozenset[str] = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation."""

    debug: bool = False

    # Emit one access-log line per request on "waymark.access"
    access_log: bool = True

    # Run the filter chain even when no route matched
    filter_unmatched: bool = False

    # Limits
    max_body_size: int = DEFAULT_MAX_BODY_SIZE
    static_chunk_size: int = DEFAULT_CHUNK_SIZE

    # Templates
    template_dir: str | None = None

    def __post_init__(self) -> None:
        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0 (0 disables the limit)")
        if self.static_chunk_size <= 0:
            raise ValueError("static_chunk_size must be > 0")

    @classmethod
    def from_env(cls, prefix: str = "WAYMARK_") -> "RouterConfig":
        """
        Build a config from environment variables.

        Unset variables keep their defaults. Invalid values raise
        ``ValueError`` immediately rather than at first use.
        """
        defaults = cls()
        return cls(
            debug=_env_bool(f"{prefix}DEBUG", defaults.debug),
            access_log=_env_bool(f"{prefix}ACCESS_LOG", defaults.access_log),
            filter_unmatched=_env_bool(
                f"{prefix}FILTER_UNMATCHED", defaults.filter_unmatched
            ),
            max_body_size=_env_int(f"{prefix}MAX_BODY_SIZE", defaults.max_body_size),
            static_chunk_size=_env_int(
                f"{prefix}STATIC_CHUNK_SIZE", defaults.static_chunk_size
            ),
            template_dir=os.environ.get(f"{prefix}TEMPLATE_DIR") or defaults.template_dir,
        )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
