"""Error Handlers — map exceptions to the IdeaBox error envelope.

Invariants:
    - IdeaBoxError → exc.to_response() at exc.http_status
    - RequestValidationError → 400 VALIDATION_ERROR with one entry per field
    - Anything else → 500 INTERNAL_ERROR; the message never carries exception text
    - HTTPException is left to FastAPI's default {"detail": ...} rendering

Design Decisions:
    - Handlers are plain module functions so tests can call them directly
    - 4xx domain errors log at WARNING, 5xx at ERROR
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ideabox.core.errors import ErrorSeverity, IdeaBoxError

logger = logging.getLogger(__name__)


def _envelope(code: str, message: str, category: str, severity: ErrorSeverity, **extra) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category,
            "severity": severity.value,
            **extra,
        },
    }


async def handle_ideabox_error(request: Request, exc: IdeaBoxError) -> JSONResponse:
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"{exc.code}: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        f"Rejected request body on {request.url.path}: {len(details)} field error(s)",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data", "validation",
            ErrorSeverity.ERROR, details=details,
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.url.path}",
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred", "internal",
            ErrorSeverity.CRITICAL,
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IdeaBoxError, handle_ideabox_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
