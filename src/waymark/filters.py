"""
Conditional filters.

Both wrappers return an ordinary filter, so they sit in the same chain
and obey the same short-circuit rule as any other filter.
"""

from waymark.patterns import PARAM_SIGIL, compile_path_filter
from waymark.request import Request
from waymark.types import Filter
from waymark.writer import ResponseWriter


def param_filter(name: str, filter: Filter) -> Filter:
    """
    Run *filter* only when the matched route bound a non-empty
    parameter called *name*. The leading ``:`` is optional.
    """
    if name.startswith(PARAM_SIGIL):
        name = name[len(PARAM_SIGIL):]

    async def gated(request: Request, writer: ResponseWriter) -> None:
        if request.params.get(name):
            await filter(request, writer)

    gated.__name__ = f"param_filter[{name}]"
    return gated


def path_filter(pattern: str, filter: Filter) -> Filter:
    """
    Run *filter* only when the raw request path matches *pattern*,
    where ``*`` stands for one or more characters (``/admin/*``).
    """
    regex = compile_path_filter(pattern)

    async def gated(request: Request, writer: ResponseWriter) -> None:
        if regex.search(request.path):
            await filter(request, writer)

    gated.__name__ = f"path_filter[{pattern}]"
    return gated
