"""
Problem-JSON error rendering.

Every error leaves the API as ``{type, title, status, detail, instance, code,
errors}``. Domain exceptions carry their own status and code; request
validation failures become 400 with field-level ``errors``; anything else is
logged and returned as a bare 500.
"""

from http import HTTPStatus
import logging
from typing import Any, Dict, Mapping, NoReturn, Optional, Tuple

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def _status_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def _split_detail(detail: Any) -> Tuple[str, Optional[str], Optional[Any]]:
    """Pull (message, code, errors) out of an HTTPException detail."""
    if isinstance(detail, Mapping):
        message = detail.get("message") or detail.get("detail") or ""
        code = detail.get("code")
        errors = detail.get("details") or detail.get("errors") or None
        return str(message), code if isinstance(code, str) else None, errors
    if detail is None:
        return "", None, None
    return str(detail), None, None


def problem_response(
    request: Request,
    status_code: int,
    detail: str = "",
    *,
    code: Optional[str] = None,
    errors: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": _status_title(status_code),
        "status": status_code,
        "detail": detail,
        "instance": request.url.path,
    }
    if code:
        body["code"] = code
    if errors is not None:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(
        body, status_code=status_code, headers=headers, media_type=PROBLEM_MEDIA_TYPE
    )


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Re-raise a domain exception as the HTTPException routes hand to FastAPI."""
    if isinstance(exc, DomainException):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message, code, errors = _split_detail(exc.detail)
        return problem_response(
            request,
            exc.status_code,
            message,
            code=code,
            errors=errors,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        return await http_exception_handler(request, exc.to_http_exception())

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return problem_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            "Request validation failed",
            code="VALIDATION_ERROR",
            errors=exc.errors(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return problem_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal Server Error",
            code="INTERNAL_SERVER_ERROR",
        )
