"""
API exception classes and error handling utilities for HealthMate.

Completion failures are never raised; they travel as CompletionResult kinds.
These exceptions cover bad record edits and unknown sessions.
"""

from fastapi import Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Optional

from healthmate.completion import CompletionKind
from healthmate.messages import REPLY_MESSAGES


class HealthMateAPIError(Exception):
    """Base exception for HealthMate API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[dict] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> JSONResponse:
        """Convert exception to FastAPI JSONResponse."""
        return JSONResponse(
            status_code=self.status_code,
            content={
                "success": False,
                "error": self.message,
                "error_code": self.error_code,
                **({"details": self.details} if self.details else {}),
            },
        )


class ValidationError(HealthMateAPIError):
    """Raised when a health record edit is invalid."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        full_details = details or {}
        if field:
            full_details["field"] = field
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR",
            details=full_details,
        )


class ResourceNotFoundError(HealthMateAPIError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details={"resource": resource, "identifier": identifier},
        )


class ConflictError(HealthMateAPIError):
    """Raised when request conflicts with existing state."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT",
            details=details,
        )


async def healthmate_error_handler(request: Request, exc: HealthMateAPIError) -> JSONResponse:
    """FastAPI exception handler for the HealthMateAPIError hierarchy."""
    return exc.to_response()


async def chat_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed /api/chat bodies still get a readable reply; other routes keep the 422."""
    if request.url.path == "/api/chat":
        return JSONResponse({
            "reply": REPLY_MESSAGES[CompletionKind.INPUT_REJECTED],
            "kind": CompletionKind.INPUT_REJECTED.value,
        })
    return await request_validation_exception_handler(request, exc)
