"""
Exception handlers: every error leaves the API as {success: false, error: {code, message}}.

400 validation, 404 not found, 409 invalid transition, 500 anything unexpected.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from publication_service.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    PublicationError,
    PublishError,
    ValidationError,
)
from publication_service.logging_config import get_logger
from publication_service.schemas.common import error_envelope

logger = get_logger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (InvalidTransitionError, 409),
    (PublishError, 502),
)


def status_for(exc: PublicationError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def publication_error_handler(request: Request, exc: PublicationError) -> JSONResponse:
    status_code = status_for(exc)
    logger.info(
        "api.domain_error",
        path=request.url.path,
        status_code=status_code,
        code=exc.code,
        error=exc.message,
    )
    return JSONResponse(status_code=status_code, content=error_envelope(exc.code, exc.message, exc.details))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    logger.info("api.request_invalid", path=request.url.path, error=message)
    return JSONResponse(
        status_code=400,
        content=error_envelope("validation_error", message, {"errors": len(errors)}),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = "not_found" if exc.status_code == 404 else f"http_{exc.status_code}"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("api.unhandled_error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content=error_envelope("internal_error", "An unexpected error occurred"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PublicationError, publication_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
