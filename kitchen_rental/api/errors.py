"""Maps domain errors and request errors to the JSON error envelope."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kitchen_rental.config import get_settings
from kitchen_rental.domain.errors import (
    KIND_AUTHORIZATION,
    KIND_CONFLICT,
    KIND_NOT_FOUND,
    KIND_STORAGE,
    KIND_UPSTREAM,
    KIND_VALIDATION,
    DomainError,
)

logger = logging.getLogger(__name__)

KIND_TO_STATUS = {
    KIND_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    KIND_VALIDATION: status.HTTP_400_BAD_REQUEST,
    KIND_CONFLICT: status.HTTP_409_CONFLICT,
    KIND_AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    KIND_UPSTREAM: status.HTTP_503_SERVICE_UNAVAILABLE,
    KIND_STORAGE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

HTTP_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: "AUTHENTICATION_ERROR",
    status.HTTP_403_FORBIDDEN: "AUTHORIZATION_ERROR",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def error_body(
    request: Request,
    status_code: int,
    message: str,
    code: str,
    details: Any = None,
    error_id: str | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "status": status_code,
        "error": message,
        "code": code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
    }
    if details is not None and not get_settings().is_production:
        body["details"] = jsonable_encoder(details)
    if error_id:
        body["error_id"] = error_id
    return body


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = KIND_TO_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    log = logger.error if status_code >= 500 else logger.info
    log(
        "Request failed with domain error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_code": exc.code,
            "error_kind": exc.kind,
        },
    )
    message = exc.message
    if exc.kind == KIND_STORAGE and get_settings().is_production:
        message = "Internal server error"
    return JSONResponse(
        status_code=status_code,
        content=error_body(request, status_code, message, exc.code, exc.details),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(
            request,
            status.HTTP_400_BAD_REQUEST,
            "Validation failed",
            "VALIDATION_ERROR",
            details=exc.errors(),
        ),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(
            request,
            exc.status_code,
            str(exc.detail),
            HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR"),
        ),
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler: the full error is logged internally and the client
    only gets an error_id to quote to support.
    """
    error_id = str(uuid.uuid4())
    logger.error(
        "Unhandled exception occurred",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        },
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please contact support with the error_id if the issue persists.",
            "INTERNAL_ERROR",
            error_id=error_id,
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
