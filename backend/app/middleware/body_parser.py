"""
Wayfarer Backend — Body Parsing
=================================

What:  Decodes JSON and URL-encoded request bodies into request.state.body.
Why:   Later stages (sanitizers) and the route handlers work on one decoded
       mapping instead of each re-reading the raw stream.
How:   The declared Content-Length is checked first. The stream is then read
       chunk by chunk and abandoned as soon as the running total passes the
       limit, so a chunked upload without Content-Length is never buffered
       past it. Oversized bodies get 413; bodies that do not decode for
       their content type get 400.

Other content types leave request.state.body as an empty dict.
"""

import json
from typing import Any, List, Optional
from urllib.parse import parse_qsl

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from app.error_handlers import render_error
from app.exceptions import MalformedBodyError, PayloadTooLargeError

JSON_TYPES = ("application/json",)
FORM_TYPES = ("application/x-www-form-urlencoded",)


def decode_body(raw: bytes, content_type: str) -> Any:
    """Decode `raw` according to the media type; raises MalformedBodyError."""
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type not in JSON_TYPES + FORM_TYPES or not raw.strip():
        return {}
    try:
        text = raw.decode("utf-8")
        if media_type in JSON_TYPES:
            return json.loads(text)
        return dict(parse_qsl(text, keep_blank_values=True))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedBodyError(f"Request body could not be parsed: {e}") from e


class BodyParserMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, limit: int = 10_240):
        super().__init__(app)
        self.limit = limit

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.limit:
            return render_error(request, PayloadTooLargeError(self.limit))

        raw = await self._read_limited(request)
        if raw is None:
            return render_error(request, PayloadTooLargeError(self.limit))

        try:
            request.state.body = decode_body(raw, request.headers.get("content-type", ""))
        except MalformedBodyError as exc:
            return render_error(request, exc)
        return await call_next(request)

    async def _read_limited(self, request: Request) -> Optional[bytes]:
        """Read the whole body, or None once it grows past the limit."""
        chunks: List[bytes] = []
        size = 0
        async for chunk in request.stream():
            size += len(chunk)
            if size > self.limit:
                return None
            chunks.append(chunk)
        raw = b"".join(chunks)
        # Starlette replays a cached body to the endpoint
        request._body = raw
        return raw
