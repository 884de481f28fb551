"""
API errors -- every failure leaves the gateway in the OpenAI error shape:

    {"error": {"message": "...", "type": "invalid_request_error", "code": "..."}}

Errors are raised before streaming starts; once the first SSE byte is out
the status code is fixed at 200.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..security.validators import ValidationError
from ..tasks.store import TaskNotFoundError
from .models.responses import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Application-level API error with status/code mapping."""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: str | None = None,
        error_type: str = "invalid_request_error",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.error_type = error_type


def error_response(
    status_code: int,
    message: str,
    code: str | None = None,
    error_type: str = "invalid_request_error",
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(message=message, type=error_type, code=code))
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def api_error_handler(_: Request, exc: APIError) -> JSONResponse:
    return error_response(exc.status_code, exc.message, exc.code, exc.error_type)


async def task_not_found_handler(_: Request, exc: TaskNotFoundError) -> JSONResponse:
    logger.warning(f"[Gateway] Unknown task {exc.task_id}")
    return error_response(404, f"Task {exc.task_id} not found", code="task_not_found")


async def validation_error_handler(_: Request, exc: ValidationError) -> JSONResponse:
    return error_response(400, str(exc), code="invalid_request")


async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Normalize FastAPI schema errors to the same envelope."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request payload")
    return error_response(
        400,
        f"{location}: {message}" if location else message,
        code="invalid_request",
    )


async def http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), code=None)


def register_exception_handlers(application: FastAPI) -> None:
    application.add_exception_handler(APIError, api_error_handler)
    application.add_exception_handler(TaskNotFoundError, task_not_found_handler)
    application.add_exception_handler(ValidationError, validation_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_handler)
    application.add_exception_handler(StarletteHTTPException, http_exception_handler)
