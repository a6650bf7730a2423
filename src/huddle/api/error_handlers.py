"""Global exception handlers rendering every failure as ``{"error": ...}``."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from huddle.services.livestream import LivestreamConfigError, LivestreamError

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build the JSON error envelope shared by all routes."""
    return JSONResponse(status_code=status_code, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        response = error_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ) -> JSONResponse:
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request data")

    @app.exception_handler(LivestreamConfigError)
    async def livestream_config_handler(
        request: Request, exc: LivestreamConfigError,
    ) -> JSONResponse:
        logger.error("Livestream misconfigured on %s: %s", request.url.path, exc)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server misconfigured")

    @app.exception_handler(LivestreamError)
    async def livestream_error_handler(request: Request, exc: LivestreamError) -> JSONResponse:
        logger.error("Livestream failure on %s: %s", request.url.path, exc, exc_info=True)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Error")

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Database error on %s: %s", request.url.path, exc, exc_info=True)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")
