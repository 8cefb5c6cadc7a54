"""Conversion of service errors into the uniform ``{status, message}`` body."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from services import AuthServiceError, ValidationError

logger = logging.getLogger(__name__)


def error_response(exc: AuthServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationError.default_message
    first_error = errors[0]
    # Drop the "body"/"query" source and list indexes; keep field names.
    field = ".".join(
        part
        for part in first_error.get("loc", ())
        if isinstance(part, str) and part not in {"body", "query"}
    )
    message = first_error.get("msg", ValidationError.default_message)
    return f"{field}: {message}" if field else message


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthServiceError)
    async def handle_service_error(request: Request, exc: AuthServiceError) -> JSONResponse:
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(
            "Request failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": exc.status_code,
                "error": type(exc).__name__,
            },
        )
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError(_validation_message(exc))
        logger.info(
            "Request validation failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "detail": error.message,
            },
        )
        return error_response(error)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": exc.status_code, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )
