"""
Wayfarer Backend — Shared Route Helpers
=========================================

What:  Dependencies that hand handlers the pipeline's cleaned input, and the
       JSend-style success envelope every API handler returns.

Envelope:
    list    {"status": "success", "results": 2, "data": {"tours": [...]}}
    single  {"status": "success", "data": {"tour": {...}}}
    delete  204, empty body
"""

from typing import Any, Dict, List, Optional, Union

from fastapi import Request, Response
from fastapi.responses import JSONResponse


def request_body(request: Request) -> Dict[str, Any]:
    """Body as decoded and sanitized by the pipeline (empty when absent)."""
    body = getattr(request.state, "body", None)
    return body if body is not None else {}


def request_query(request: Request) -> Dict[str, Any]:
    """Query parameters after sanitization and the pollution guard."""
    query = getattr(request.state, "query", None)
    if query is None:
        query = dict(request.query_params)
    return query


def success(
    key: str,
    data: Union[Dict[str, Any], List[Dict[str, Any]]],
    status_code: int = 200,
    results: Optional[int] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"status": "success"}
    if isinstance(data, list):
        content["results"] = len(data) if results is None else results
    content["data"] = {key: data}
    return JSONResponse(status_code=status_code, content=content)


def no_content() -> Response:
    return Response(status_code=204)
