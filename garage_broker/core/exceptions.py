import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from garage_broker.core.config import get_settings
from garage_broker.core.domain_exceptions import DomainException
from garage_broker.core.error_codes import ErrorCode
from garage_broker.schemas.common import APIError, APIResponse

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Internal server error."


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIResponse(
            success=False,
            error=APIError(code=code, message=message),
        ).model_dump(),
    )


def _is_production(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None) or get_settings()
    return settings.is_production


async def http_exception_handler(request: Request, exc: HTTPException):
    if exc.status_code >= 500:
        code = ErrorCode.INTERNAL_ERROR
    elif exc.status_code == 404:
        code = ErrorCode.NOT_FOUND
    elif exc.status_code == 405:
        code = ErrorCode.METHOD_NOT_ALLOWED
    else:
        code = ErrorCode.VALIDATION_ERROR
    return _error_response(exc.status_code, code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))

    logger.warning(
        "Request validation failed",
        extra={"path": request.url.path, "errors": messages},
    )
    return _error_response(400, ErrorCode.VALIDATION_ERROR, "; ".join(messages))


async def domain_exception_handler(request: Request, exc: DomainException):
    return _error_response(exc.status_code, exc.code, exc.message)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
    )
    message = GENERIC_SERVER_ERROR
    if not _is_production(request):
        message = f"{GENERIC_SERVER_ERROR} {exc.__class__.__name__}: {exc}"
    return _error_response(500, ErrorCode.INTERNAL_ERROR, message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(SQLAlchemyError, unhandled_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
