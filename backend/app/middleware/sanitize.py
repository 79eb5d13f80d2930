"""
Wayfarer Backend — Input Sanitization
=======================================

What:  Two stages that clean client input before any handler sees it.

    QueryInjectionMiddleware
        Drops every key that starts with `$` or contains `.`, at any depth
        of the body and in the query string. Such keys are operator or
        path syntax for document queries and never legitimate field names.

    XSSSanitizerMiddleware
        Replaces `<` with `&lt;` in every string value of the body and the
        query string, so stored text cannot open a tag. Other characters
        (`&`, `>`, quotes) are left alone; templates escape on output.

How:   Both operate on request.state.body and request.state.query_items
       (a list of (key, value) pairs, duplicates preserved for the
       parameter pollution stage).
"""

from typing import Any, Callable, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


def is_forbidden_key(key: Any) -> bool:
    return isinstance(key, str) and (key.startswith("$") or "." in key)


def strip_forbidden_keys(value: Any) -> Any:
    """Recursively remove forbidden keys from dicts (lists are walked too)."""
    if isinstance(value, dict):
        return {k: strip_forbidden_keys(v) for k, v in value.items() if not is_forbidden_key(k)}
    if isinstance(value, list):
        return [strip_forbidden_keys(v) for v in value]
    return value


def escape_html(value: Any) -> Any:
    """Recursively neutralize `<` in every string value."""
    return _map_strings(value, lambda s: s.replace("<", "&lt;"))


def _map_strings(value: Any, fn: Callable[[str], str]) -> Any:
    if isinstance(value, str):
        return fn(value)
    if isinstance(value, dict):
        return {k: _map_strings(v, fn) for k, v in value.items()}
    if isinstance(value, list):
        return [_map_strings(v, fn) for v in value]
    return value


def _query_items(request: Request) -> List[Tuple[str, str]]:
    items = getattr(request.state, "query_items", None)
    if items is None:
        items = request.query_params.multi_items()
    return list(items)


class QueryInjectionMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.body = strip_forbidden_keys(getattr(request.state, "body", {}))
        request.state.query_items = [
            (k, v) for k, v in _query_items(request) if not is_forbidden_key(k)
        ]
        return await call_next(request)


class XSSSanitizerMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.body = escape_html(getattr(request.state, "body", {}))
        request.state.query_items = [(k, escape_html(v)) for k, v in _query_items(request)]
        return await call_next(request)
