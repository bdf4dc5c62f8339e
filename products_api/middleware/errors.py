# products_api/middleware/errors.py
import logging
import traceback
from typing import Any, Dict, List, Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from ..config import Config
from ..exceptions import AppError, RateLimitError
from ..utils.formatters import format_datetime, utc_now

logger = logging.getLogger(__name__)


def request_target(request: Request) -> str:
    """Path plus query string, as the client sent it"""
    return request.url.path + (f"?{request.url.query}" if request.url.query else "")


def error_body(
    request: Request,
    message: str,
    status_code: int,
    code: str,
    details: Optional[List[Any]] = None,
) -> Dict[str, Any]:
    """The single error envelope used for every failure"""
    error: Dict[str, Any] = {
        "message": message,
        "code": code,
        "statusCode": status_code,
    }
    if details:
        error["details"] = details
    error["timestamp"] = format_datetime(utc_now())
    error["path"] = request_target(request)
    error["method"] = request.method
    return {"error": error}


def error_response(request: Request, message: str, status_code: int, code: str,
                   details: Optional[List[Any]] = None, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        error_body(request, message, status_code, code, details),
        status_code=status_code,
        headers=headers,
    )


def register_exception_handlers(app: FastAPI, config: Config):
    """Route every failure through the envelope"""

    async def handle_app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(
                f"API Error: {exc.code} {exc.message} ({request.method} {request.url.path})",
                exc_info=exc.__cause__ or exc,
            )
        else:
            logger.info(f"API Error: {exc.code} {exc.message} ({request.method} {request.url.path})")

        headers = None
        if isinstance(exc, RateLimitError):
            headers = {"Retry-After": str(exc.retry_after)}
        elif exc.status_code == 401:
            headers = {"WWW-Authenticate": "Bearer"}

        return error_response(request, exc.message, exc.status_code, exc.code, exc.details, headers)

    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(request, f"Route {request_target(request)} not found", 404, "ROUTE_NOT_FOUND")
        if exc.status_code == 405:
            return error_response(
                request,
                f"Method {request.method} not allowed for {request.url.path}",
                405,
                "METHOD_NOT_ALLOWED",
                headers=getattr(exc, "headers", None),
            )
        return error_response(request, str(exc.detail), exc.status_code, "HTTP_ERROR")

    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = [error.get("msg", "Invalid value") for error in exc.errors()]
        return error_response(request, "Validation failed", 400, "VALIDATION_ERROR", details)

    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
        )
        if config.is_production():
            return error_response(request, "Internal server error", 500, "INTERNAL_ERROR")

        body = error_body(request, str(exc) or exc.__class__.__name__, 500, "INTERNAL_ERROR")
        body["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
        return JSONResponse(body, status_code=500)

    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)
