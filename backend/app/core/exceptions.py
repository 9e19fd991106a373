"""
Custom exception classes for the application.

Provides standardized HTTP exceptions for common error cases.
"""

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class BadRequestException(HTTPException):
    """Exception raised for invalid request data."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class BenchmarkFailedException(HTTPException):
    """Exception raised when the engine fails outside its recovered error paths."""

    def __init__(self, detail: str = "Benchmark calculation failed"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
        )


def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handler for request validation errors.

    Same shape as FastAPI's default 422 body, minus the echoed ``input``:
    rejected values such as ``Infinity`` cannot be rendered as JSON.

    Args:
        request: The request that failed validation
        exc: The validation error

    Returns:
        JSONResponse: 422 response listing the validation errors
    """
    errors = [
        {key: value for key, value in error.items() if key != "input"}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(errors)},
    )
