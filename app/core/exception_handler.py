# app/core/exception_handler.py
"""
Maps exceptions to the standard error envelope:

    {"success": false, "error": {"code": ..., "message": ...},
     "meta": {"requestId": ..., "timestamp": ...}}
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import AppException
from app.schemas.vote_schema import ErrorDetail, ErrorResponse, ResponseMeta

logger = logging.getLogger(__name__)

GENERIC_SERVER_MESSAGE = "Internal server error"


def build_meta(request: Request) -> ResponseMeta:
    return ResponseMeta(request_id=getattr(request.state, "request_id", "unknown"))


def _error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    headers: Optional[dict] = None,
) -> JSONResponse:
    if status_code >= 500 and settings.is_production:
        message = GENERIC_SERVER_MESSAGE
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message), meta=build_meta(request)
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(by_alias=True)),
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"{exc.__class__.__name__}: {exc.detail}",
        exc_info=exc.status_code >= 500,
        extra={
            "status_code": exc.status_code,
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _error_response(
        request,
        status_code=exc.status_code,
        code=exc.error_code,
        message=exc.detail,
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    logger.info(
        "Request validation failed",
        extra={"path": request.url.path, "errors": len(errors)},
    )
    return _error_response(
        request,
        status_code=status.HTTP_400_BAD_REQUEST,
        code="VALIDATION_ERROR",
        message=message,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    return _error_response(
        request,
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    logger.error(
        "Database error while handling request",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return _error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="DATABASE_ERROR",
        message="A database error occurred while processing the request",
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error while handling request",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return _error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="INTERNAL_SERVER_ERROR",
        message="An unexpected error occurred while processing the request",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Registers all exception handlers for the FastAPI application."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
