"""
Wayfarer Backend — Parameter Pollution Guard
==============================================

What:  Collapses repeated query parameters into request.state.query.
How:   For most keys the last occurrence wins. Whitelisted keys keep every
       occurrence as a list (a single occurrence stays a plain string), which
       QueryFeatures turns into an IN filter.

    ?sort=duration&sort=price          → {"sort": "price"}
    ?duration=5&duration=9             → {"duration": ["5", "9"]}
"""

from typing import Any, Dict, Iterable, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp


def collapse_query(items: Iterable[Tuple[str, str]], whitelist: Iterable[str]) -> Dict[str, Any]:
    allowed = set(whitelist)
    collected: Dict[str, List[str]] = {}
    for key, value in items:
        collected.setdefault(key, []).append(value)

    query: Dict[str, Any] = {}
    for key, values in collected.items():
        if key in allowed and len(values) > 1:
            query[key] = values
        else:
            query[key] = values[-1]
    return query


class ParameterPollutionMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, whitelist: Iterable[str] = ()):
        super().__init__(app)
        self.whitelist = tuple(whitelist)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        items = getattr(request.state, "query_items", None)
        if items is None:
            items = request.query_params.multi_items()
        request.state.query = collapse_query(items, self.whitelist)
        return await call_next(request)
