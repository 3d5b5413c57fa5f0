# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API error envelope.

Every failure leaves the API as:

    {"success": false, "error": "<message>", "code": "<MACHINE_CODE>"}

``code`` is present when the failure has a machine-readable code. Routers
raise ApiError (or plain HTTPException) and the handlers registered here
render the envelope.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(StarletteHTTPException):
    """HTTP error carrying a machine code and extra envelope fields.

    Example:
        raise ApiError(401, "Invalid username or password", "INVALID_CREDENTIALS")
        raise ApiError(400, "Missing required fields", required=["CustomerName"])
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        code: str | None = None,
        headers: dict[str, str] | None = None,
        **extra: Any,
    ) -> None:
        super().__init__(status_code=status_code, detail=error, headers=headers)
        self.error = error
        self.code = code
        self.extra = extra


def error_body(error: str, code: str | None = None, **extra: Any) -> dict[str, Any]:
    """Build the error envelope."""
    body: dict[str, Any] = {"success": False, "error": error}
    if code:
        body["code"] = code
    body.update(extra)
    return body


def error_response(
    status_code: int,
    error: str,
    code: str | None = None,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    """Render the error envelope as a response.

    Middleware that short-circuits a request uses this directly.
    """
    return JSONResponse(
        status_code=status_code,
        content=error_body(error, code, **extra),
        headers=headers,
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Render HTTPException and ApiError."""
    if isinstance(exc, ApiError):
        return error_response(exc.status_code, exc.error, exc.code, exc.headers, **exc.extra)
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(exc.status_code, detail, headers=getattr(exc, "headers", None))


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render request validation failures as 400."""
    logger.info("Invalid request to %s: %d error(s)", request.url.path, len(exc.errors()))
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request",
        "VALIDATION_ERROR",
        details=details,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and hide their details."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong!")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on an application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
