"""
Wayfarer Backend — Static Asset Short-Circuit
===============================================

What:  Serves files from the public directory before any other stage runs.
Why:   Stylesheets, images and scripts need none of the API machinery; a
       hit ends the request here, a miss falls through to the pipeline.
How:   GET/HEAD only. The URL path is resolved against the public root and
       must stay inside it; anything else (including `..` escapes) is a miss.
"""

from pathlib import Path
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import FileResponse, Response
from starlette.types import ASGIApp


class StaticFilesMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, directory: str):
        super().__init__(app)
        self.root = Path(directory).resolve()

    def lookup(self, url_path: str) -> Optional[Path]:
        """Existing file under the public root for `url_path`, else None."""
        relative = url_path.lstrip("/")
        if not relative:
            return None
        candidate = (self.root / relative).resolve()
        if self.root not in candidate.parents or not candidate.is_file():
            return None
        return candidate

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method in ("GET", "HEAD"):
            path = self.lookup(request.url.path)
            if path is not None:
                return FileResponse(path)
        return await call_next(request)
