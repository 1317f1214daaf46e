"""Exception handlers — map service errors to JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from filehub.services.auth_service import AuthError
from filehub.services.exceptions import FileHubError

logger = logging.getLogger(__name__)


async def filehub_error_handler(request: Request, exc: FileHubError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
        headers=headers,
    )


async def timeout_handler(request: Request, exc: TimeoutError) -> JSONResponse:
    logger.error("%s %s timed out", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        content={"success": False, "error": "Operation timed out"},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FileHubError, filehub_error_handler)
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(TimeoutError, timeout_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    logger.debug("Exception handlers registered")
