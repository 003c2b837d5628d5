"""Error Handlers: global exception handlers for the Rebuzzle API.

Invariants:
    - RebuzzleError -> structured JSON with error code, message, severity, retryable
    - RequestValidationError -> field-level error details
    - Exception (catch-all) -> never leaks internal details

Design Decisions:
    - Three-layer handler: domain (RebuzzleError), validation (Pydantic), catch-all (Exception)
    - Retryable errors carry a Retry-After header so clients back off uniformly
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from rebuzzle.core.errors import RebuzzleError, ErrorSeverity

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = "1"


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_rebuzzle_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_rebuzzle_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RebuzzleError)
    async def rebuzzle_error_handler(request: Request, exc: RebuzzleError):
        """Handle all Rebuzzle domain/infrastructure errors."""
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            f"RebuzzleError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        headers = {"Retry-After": RETRY_AFTER_SECONDS} if exc.retryable else None
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(), headers=headers,
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        logger.warning(
            f"Validation error on {request.url.path}: {len(exc.errors())} error(s)",
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all: never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
