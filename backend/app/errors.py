"""
Problem-details error envelope for every non-2xx response.

All handlers funnel into ``problem_response`` so clients always receive
``type, title, status, detail, instance`` and, when known, a machine
readable ``code`` (mirrored as ``error``) plus per-field ``errors``.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

logger = logging.getLogger(__name__)

STATUS_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    500: "Internal Server Error",
}

FALLBACK_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def problem_response(
    request: Request,
    status: int,
    *,
    detail: Optional[str] = None,
    code: Optional[str] = None,
    errors: Any = None,
    title: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": title or STATUS_TITLES.get(status, "Error"),
        "status": status,
        "detail": detail or "",
        "instance": request.url.path,
    }
    code = code or FALLBACK_CODES.get(status)
    if code:
        body["code"] = code
        body["error"] = code
    if errors:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(body, status_code=status, headers=dict(headers) if headers else None)


def _unpack_detail(detail: Any) -> Tuple[Optional[str], Optional[str], Any, Optional[str]]:
    """Split an HTTPException detail into (message, code, errors, title)."""
    if isinstance(detail, dict):
        code = detail.get("code") or detail.get("error")
        message = detail.get("message") or detail.get("detail")
        title = detail.get("title")
        return (
            message if isinstance(message, str) else None,
            code if isinstance(code, str) else None,
            detail.get("details") or detail.get("errors"),
            title if isinstance(title, str) and title.strip() else None,
        )
    if detail is None:
        return None, None, None, None
    return str(detail), None, None, None


def _from_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message, code, errors, title = _unpack_detail(exc.detail)
    return problem_response(
        request,
        exc.status_code,
        detail=message,
        code=code,
        errors=errors,
        title=title,
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _from_http_exception(request, exc)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        return _from_http_exception(request, exc.to_http_exception())

    # Malformed bodies are reported as 400 rather than FastAPI's default 422.
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return problem_response(
            request, 400, detail="Request validation failed", code="VALIDATION_ERROR", errors=exc.errors()
        )

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return problem_response(request, 400, detail="Validation failed", code="VALIDATION_ERROR", errors=exc.errors())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
        return problem_response(request, 500, detail="Internal Server Error", code="INTERNAL_SERVER_ERROR")
