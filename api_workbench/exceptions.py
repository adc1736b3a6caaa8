"""
Custom exception classes and error handling for the API Workbench.

Provides consistent error responses across all API endpoints. Network and
protocol failures are never raised from here: executors turn them into
zero-status responses. What is raised are lookup failures and
configuration errors, which indicate bad data rather than a flaky network.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response format."""
    detail: str
    error_code: str | None = None


class APIException(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str | None = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(detail)


class ResourceNotFoundError(APIException):
    """Exception raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: Any):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            detail=f"{resource_type} with id {resource_id} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND"
        )


class ValidationError(APIException):
    """Exception raised when request validation fails."""

    def __init__(self, detail: str):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR"
        )


class BadRequestError(APIException):
    """Exception raised for invalid request data."""

    def __init__(self, detail: str):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BAD_REQUEST"
        )


class ConfigurationError(APIException):
    """
    A programming or data error that retrying cannot fix.

    Raised immediately to the caller instead of being recorded as a failed
    request.
    """

    def __init__(self, detail: str, error_code: str = "CONFIGURATION_ERROR"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code
        )


class ExecutorNotFoundError(ConfigurationError):
    """No registered executor can handle the request variant."""

    def __init__(self, request_type: Any):
        self.request_type = request_type
        super().__init__(
            detail=f"No executor found for request type: {request_type}",
            error_code="EXECUTOR_NOT_FOUND"
        )


class FlowStepReferenceError(ConfigurationError):
    """A flow step points at a request that does not exist."""

    def __init__(self, step_order: int, request_id: Any):
        self.step_order = step_order
        self.request_id = request_id
        super().__init__(
            detail=f"Step {step_order} references unknown request {request_id}",
            error_code="INVALID_FLOW_STEP"
        )


def _error_body(detail: str, error_code: str | None) -> dict[str, Any]:
    return ErrorResponse(detail=detail, error_code=error_code).model_dump()


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.detail, exc.error_code))


def format_validation_errors(errors: list[dict[str, Any]]) -> str:
    """Flatten pydantic errors into ``"body -> name: Field required; ..."``."""
    parts = [
        f"{' -> '.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in errors
    ]
    return "; ".join(parts) or "Validation error"


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(format_validation_errors(exc.errors()), "VALIDATION_ERROR"),
    )


async def sqlalchemy_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Database error occurred", "DATABASE_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on ``app``."""
    handlers = {
        APIException: api_exception_handler,
        RequestValidationError: validation_exception_handler,
        SQLAlchemyError: sqlalchemy_exception_handler,
    }
    for exc_class, handler in handlers.items():
        app.add_exception_handler(exc_class, handler)
