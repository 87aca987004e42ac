"""
Route pattern compilation.

A route template is a ``/``-delimited path. A segment starting with ``:``
is a named parameter; an optional parenthesized suffix overrides the
default capture expression::

    /person/:last/:first        -> last, first match one segment each
    /user/:id([0-9]+)           -> id matches digits only
    /files/:file(.+)            -> file may span several segments

Every other character is taken as regular-expression text, so templates
may embed arbitrary expressions outside parameter segments.
"""

import re
from dataclasses import dataclass

from waymark.exceptions import RoutingError

PARAM_SIGIL: str = ":"

# Capture body used when a parameter has no override
DEFAULT_PARAM_PATTERN: str = r"[^/]+"

# Group names are generated so that parameter binding stays positional even
# when literal fragments or override bodies add groups of their own.
_GROUP_PREFIX: str = "_p"


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A compiled route template and its parameter names, in order."""

    pattern: str
    regex: re.Pattern[str]
    param_names: tuple[str, ...]

    def match(self, path: str) -> list[str] | None:
        """
        Match *path* and return the captured values in parameter order.

        The match has to cover the whole path. This is checked against the
        span of the match instead of with ``^``/``$`` anchors, because an
        override sub-pattern may carry anchors or slashes of its own.
        """
        found = self.regex.search(path)
        if found is None:
            return None
        start, end = found.span()
        if end - start != len(path):
            return None
        return [
            found.group(f"{_GROUP_PREFIX}{index}") or ""
            for index in range(len(self.param_names))
        ]


def compile_pattern(pattern: str) -> CompiledPattern:
    """
    Compile a route template.

    Raises:
        RoutingError: If a parameter has no name or the resulting
                      expression cannot be compiled.
    """
    parts = pattern.split("/")
    names: list[str] = []

    for i, part in enumerate(parts):
        if not part.startswith(PARAM_SIGIL):
            continue

        name = part[len(PARAM_SIGIL):]
        body = DEFAULT_PARAM_PATTERN
        # A user may override the default expression: /user/:id([0-9]+)
        index = name.find("(")
        if index != -1:
            body = name[index:]
            name = name[:index]

        if not name:
            raise RoutingError(f"Unnamed parameter segment {part!r} in pattern {pattern!r}")

        parts[i] = f"(?P<{_GROUP_PREFIX}{len(names)}>{body})"
        names.append(name)

    expression = "/".join(parts)
    try:
        regex = re.compile(expression)
    except re.error as exc:
        raise RoutingError(f"Invalid route pattern {pattern!r}: {exc}") from exc

    return CompiledPattern(pattern=pattern, regex=regex, param_names=tuple(names))


def compile_path_filter(pattern: str) -> re.Pattern[str]:
    """
    Compile a path-filter pattern. Each ``*`` matches one or more characters
    of any kind, so ``/admin/*`` covers everything below ``/admin/``.
    """
    try:
        return re.compile(pattern.replace("*", "(.+)"))
    except re.error as exc:
        raise RoutingError(f"Invalid path filter {pattern!r}: {exc}") from exc


def build_path(compiled: CompiledPattern, params: dict[str, object]) -> str:
    """Substitute parameter values back into a template."""
    parts = compiled.pattern.split("/")
    for i, part in enumerate(parts):
        if not part.startswith(PARAM_SIGIL):
            continue
        name = part[len(PARAM_SIGIL):].split("(", 1)[0]
        if name not in params:
            raise RoutingError(
                f"Missing value for parameter {name!r} of {compiled.pattern!r}"
            )
        parts[i] = str(params[name])
    return "/".join(parts)
