"""
Typed API errors and the handlers that turn them into the error envelope.

Every failure leaves the API as
``{"statusCode", "message", "success": false, "errors": [...]}``.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: list[Any] | None = None, headers: dict[str, str] | None = None):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)
        self.errors = errors or []


class BadRequest(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT


class UpstreamError(ApiError):
    status_code = status.HTTP_502_BAD_GATEWAY


class StoreUnavailable(ApiError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def error_body(status_code: int, message: str, errors: list[Any] | None = None) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "message": message,
        "success": False,
        "errors": jsonable_encoder(errors or []),
    }


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    errors = getattr(exc, "errors", None)
    if errors is None and not isinstance(exc.detail, str):
        errors = [exc.detail]
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, message, errors),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    first = errors[0] if errors else None
    message = "Invalid request"
    if first:
        message = f"Invalid {'.'.join(str(p) for p in first['loc'][1:]) or 'request'}: {first['msg']}"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(status.HTTP_400_BAD_REQUEST, message, errors),
    )


async def store_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"[store] {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_body(status.HTTP_503_SERVICE_UNAVAILABLE, "Data store unavailable"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(OperationalError, store_exception_handler)
    app.add_exception_handler(InterfaceError, store_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
