"""
Wayfarer Backend — Error Translation Layer
============================================

What:  Turns any failure into the one response shape clients see.
Why:   Handlers, services and pipeline stages raise whatever fits their
       layer; clients must still get a consistent body whose detail depends
       only on the runtime mode.
How:   Two steps.
       1. translate_error(): storage and framework failures → WayfarerError
       2. render_error():    WayfarerError + mode → JSON (or HTML page)

Translation table:
    CastError (bad id, bad filter value)   → 400 "Invalid <path>: <value>."
    IntegrityError on a unique field       → 400 "Duplicate field value: ..."
    pydantic / FastAPI validation errors   → 400 "Invalid input data. ..."
    Starlette HTTPException                → its own status and detail
    WayfarerError                          → unchanged
    anything else                          → 500, non-operational

Exposure by mode:
    development  {status, error{name,statusCode,isOperational,details}, message, stack}
    production   operational:     {status, message}
                 non-operational: logged, then 500 "Something went very wrong!"

Entry points:
    register_exception_handlers(app)  for failures FastAPI catches itself
    ErrorSupervisorMiddleware         for everything that escapes the router
    render_error(request, exc)        used directly by pipeline stages
"""

import logging
import re
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import settings
from app.database import CastError
from app.exceptions import (
    DuplicateFieldError,
    FieldError,
    InvalidFieldValueError,
    RateLimitExceededError,
    ValidationError,
    WayfarerError,
)
from app.middleware.request_id import request_id_var
from app.rendering import templates

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Something went very wrong!"

# PostgreSQL: Key (name)=(The Forest Hiker) already exists.
_PG_DUPLICATE = re.compile(r"Key \((\w+)\)=\((.*?)\)")
# SQLite: UNIQUE constraint failed: tours.name
_SQLITE_DUPLICATE = re.compile(r"UNIQUE constraint failed: \w+\.(\w+)")
_INSERT_COLUMNS = re.compile(r"INSERT INTO \S+ \(([^)]*)\)")
_UPDATE_ASSIGNMENTS = re.compile(r"(\"?\w+\"?)=\?")


# ══════════════════════════════════════════════════════════════════════════
# Translation
# ══════════════════════════════════════════════════════════════════════════

def _duplicate_from_integrity(exc: IntegrityError) -> Optional[DuplicateFieldError]:
    """Recognize a unique-constraint violation and recover the offending value."""
    detail = str(exc.orig)
    match = _PG_DUPLICATE.search(detail)
    if match:
        return DuplicateFieldError(value=match.group(2), field=match.group(1))

    match = _SQLITE_DUPLICATE.search(detail)
    if match:
        field = match.group(1)
        value = _bound_value(exc.statement or "", exc.params, field)
        return DuplicateFieldError(value=field if value is None else value, field=field)
    return None


def _bound_value(statement: str, params: Any, field: str) -> Any:
    """Find the parameter bound to `field` in a positional INSERT/UPDATE."""
    if isinstance(params, dict):
        return params.get(field)
    if not isinstance(params, (list, tuple)):
        return None

    insert = _INSERT_COLUMNS.search(statement)
    if insert:
        columns = [c.strip().strip('"') for c in insert.group(1).split(",")]
    else:
        columns = [c.strip('"') for c in _UPDATE_ASSIGNMENTS.findall(statement)]
    if field in columns and columns.index(field) < len(params):
        return params[columns.index(field)]
    return None


def _field_errors(errors: List[Dict[str, Any]]) -> List[FieldError]:
    result = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        result.append(FieldError(field, f"{field}: {err.get('msg', 'invalid value')}."))
    return result


def translate_error(exc: BaseException) -> WayfarerError:
    """Map a raised exception onto the application error it represents."""
    if isinstance(exc, WayfarerError):
        return exc
    if isinstance(exc, CastError):
        return InvalidFieldValueError(path=exc.path, value=exc.value)
    if isinstance(exc, IntegrityError):
        duplicate = _duplicate_from_integrity(exc)
        if duplicate is not None:
            return duplicate
    if isinstance(exc, (SchemaValidationError, RequestValidationError)):
        return ValidationError(_field_errors(list(exc.errors())))
    if isinstance(exc, StarletteHTTPException):
        return WayfarerError(message=str(exc.detail), status_code=exc.status_code)

    return WayfarerError(
        message=str(exc) or type(exc).__name__,
        status_code=500,
        is_operational=False,
    )


# ══════════════════════════════════════════════════════════════════════════
# Rendering
# ══════════════════════════════════════════════════════════════════════════

def _format_stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def _wants_html(request: Request) -> bool:
    """Non-API paths requested by a browser get the error page instead of JSON."""
    path = request.url.path
    if path == "/api" or path.startswith("/api/"):
        return False
    return "text/html" in request.headers.get("accept", "")


def build_error_body(exc: BaseException, err: WayfarerError) -> Dict[str, Any]:
    """JSON body for one failure, according to the current mode."""
    if settings.is_development:
        return {
            "status": err.status,
            "error": {
                "name": type(exc).__name__,
                "statusCode": err.status_code,
                "isOperational": err.is_operational,
                "details": err.context,
            },
            "message": err.message,
            "stack": _format_stack(exc),
        }
    if err.is_operational:
        return {"status": err.status, "message": err.message}
    return {"status": "error", "message": GENERIC_MESSAGE}


def render_error(request: Request, exc: BaseException) -> Response:
    """Translate, log and render a failure for the given request."""
    err = translate_error(exc)
    rid = request_id_var.get("")

    if not err.is_operational:
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=exc)
    elif err.status_code >= 500:
        logger.error("[%s] %s", rid, err.message)
    else:
        logger.debug("[%s] %s %s → %d %s", rid, request.method, request.url.path,
                     err.status_code, err.message)

    status_code = err.status_code if (err.is_operational or settings.is_development) else 500
    headers = {}
    if isinstance(err, RateLimitExceededError):
        headers["Retry-After"] = str(err.retry_after)

    if _wants_html(request):
        exposed = err.is_operational or settings.is_development
        return templates.TemplateResponse(
            request,
            "error.html",
            {
                "title": "Something went wrong!",
                "msg": err.message if exposed else "Please try again later.",
            },
            status_code=status_code,
            headers=headers,
        )
    return JSONResponse(
        status_code=status_code,
        content=build_error_body(exc, err),
        headers=headers,
    )


# ══════════════════════════════════════════════════════════════════════════
# Registration
# ══════════════════════════════════════════════════════════════════════════

async def _handle(request: Request, exc: Exception) -> Response:
    return render_error(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Route every failure FastAPI can intercept to render_error().

    Anything not listed here escapes the router and is caught by
    ErrorSupervisorMiddleware, which renders it the same way.
    """
    for exc_class in (
        WayfarerError,
        CastError,
        IntegrityError,
        SchemaValidationError,
        RequestValidationError,
        StarletteHTTPException,
    ):
        app.add_exception_handler(exc_class, _handle)


class ErrorSupervisorMiddleware(BaseHTTPMiddleware):
    """Last line of defence: no exception leaves the pipeline unrendered."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return render_error(request, exc)
