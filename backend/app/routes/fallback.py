"""Catch-all route: any path and method no other router matched is a 404."""

from fastapi import APIRouter, Request

from app.exceptions import RouteNotFoundError

router = APIRouter(include_in_schema=False)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.api_route("/{path:path}", methods=ALL_METHODS)
async def route_not_found(path: str, request: Request):
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    raise RouteNotFoundError(target)
