"""
Custom exception classes and structured error responses.

This module provides:
- Structured error response format
- Specific exception classes for each lifecycle failure
- Error codes for programmatic error handling
- FastAPI handlers that render the error envelope as the response body
"""

from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app_lifecycle.core.correlation import get_correlation_id


class ErrorCode:
    """Error codes for programmatic error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    UNAUTHORIZED = "ERR_1003"
    FORBIDDEN = "ERR_1004"

    # Application errors (2xxx)
    APPLICATION_NOT_FOUND = "ERR_2001"
    APPLICATION_DUPLICATE = "ERR_2003"
    APPLICATION_NOT_OWNED = "ERR_2004"
    APPLICATION_INVALID_TRANSITION = "ERR_2005"

    # Withdrawal errors (25xx)
    WITHDRAWAL_INVALID_STATE = "ERR_2501"
    WITHDRAWAL_ALREADY_WITHDRAWN = "ERR_2502"
    WITHDRAWAL_ALREADY_REQUESTED = "ERR_2503"
    WITHDRAWAL_COMPLETED = "ERR_2504"
    WITHDRAWAL_NOT_PENDING = "ERR_2505"

    # Post errors (3xxx)
    POST_NOT_FOUND = "ERR_3001"
    POST_NOT_OPEN = "ERR_3002"
    POST_ALREADY_FILLED = "ERR_3003"

    # Notification errors (4xxx)
    NOTIFICATION_NOT_FOUND = "ERR_4001"

    # Database errors (5xxx)
    DATABASE_ERROR = "ERR_5001"
    DATABASE_CONNECTION_ERROR = "ERR_5002"

    # Rate limit errors (7xxx)
    RATE_LIMIT_EXCEEDED = "ERR_7001"

    # Authentication errors (8xxx)
    AUTH_TOKEN_INVALID = "ERR_8001"
    AUTH_TOKEN_EXPIRED = "ERR_8002"


class ErrorDetail(BaseModel):
    """Structured error detail for API responses."""

    code: str
    message: str
    field: str | None = None


class ErrorResponse(BaseModel):
    """Structured error response for API."""

    success: bool = False
    error: str  # Human-readable message, kept under "error" for existing clients
    error_type: str  # Error class name
    code: str  # Error code for programmatic handling
    details: list[ErrorDetail] | None = None
    correlation_id: str | None = None
    timestamp: str  # ISO 8601 timestamp
    path: str | None = None

    @classmethod
    def create(
        cls,
        error_type: str,
        code: str,
        message: str,
        details: list[ErrorDetail] | None = None,
        path: str | None = None,
    ) -> "ErrorResponse":
        """Create an error response with current timestamp and correlation ID."""
        return cls(
            error=message,
            error_type=error_type,
            code=code,
            details=details,
            correlation_id=get_correlation_id(),
            timestamp=datetime.utcnow().isoformat() + "Z",
            path=path,
        )


class LifecycleServiceException(HTTPException):
    """Base exception for all application lifecycle errors."""

    error_code: str = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        error_code: str | None = None,
        details: list[ErrorDetail] | None = None,
    ):
        self.error_code = error_code or self.__class__.error_code
        self.message = detail
        error_response = ErrorResponse.create(
            error_type=self.__class__.__name__,
            code=self.error_code,
            message=detail,
            details=details,
        )
        super().__init__(status_code=status_code, detail=error_response.model_dump())


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(LifecycleServiceException):
    """Base class for not found errors."""

    def __init__(self, resource: str, identifier: Any):
        self.identifier = identifier
        super().__init__(detail=f"{resource} not found", status_code=status.HTTP_404_NOT_FOUND)


class ApplicationNotFoundError(NotFoundError):
    """Raised when an application is not found."""

    error_code = ErrorCode.APPLICATION_NOT_FOUND

    def __init__(self, application_id: str):
        super().__init__(resource="Application", identifier=application_id)


class PostNotFoundError(NotFoundError):
    """Raised when the referenced post does not exist."""

    error_code = ErrorCode.POST_NOT_FOUND

    def __init__(self, post_ref: str):
        super().__init__(resource="Post", identifier=post_ref)


class NotificationNotFoundError(NotFoundError):
    """Raised when an admin notification is not found."""

    error_code = ErrorCode.NOTIFICATION_NOT_FOUND

    def __init__(self, notification_id: str):
        super().__init__(resource="Notification", identifier=notification_id)


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(LifecycleServiceException):
    """Raised when request validation fails."""

    error_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, details: list[ErrorDetail] | None = None):
        super().__init__(detail=message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class InvalidIdentifierError(ValidationError):
    """Raised when an identifier is not a valid ObjectId."""

    def __init__(self, field: str, value: str):
        super().__init__(
            message=f"Invalid {field} format",
            details=[ErrorDetail(code=self.error_code, message=f"{value!r} is not a valid id", field=field)],
        )


# =============================================================================
# Application State Errors
# =============================================================================


class ApplicationStateError(LifecycleServiceException):
    """Base class for application state conflicts."""

    def __init__(self, message: str, status_code: int = status.HTTP_409_CONFLICT):
        super().__init__(detail=message, status_code=status_code)


class DuplicateApplicationError(ApplicationStateError):
    """Raised when a candidate applies to the same post twice."""

    error_code = ErrorCode.APPLICATION_DUPLICATE

    def __init__(self):
        super().__init__(message="You have already applied to this post.")


class InvalidTransitionError(ApplicationStateError):
    """Raised when the state machine rejects a transition."""

    error_code = ErrorCode.APPLICATION_INVALID_TRANSITION

    def __init__(self, current_status: str, target_status: str):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            message=f"Cannot move application from {current_status} to {target_status}"
        )


class PostNotOpenError(ApplicationStateError):
    """Raised when applying to a post that no longer accepts applicants."""

    error_code = ErrorCode.POST_NOT_OPEN

    def __init__(self, post_status: str):
        super().__init__(message=f"Post is not open for applications (status: {post_status})")


class PostAlreadyFilledError(ApplicationStateError):
    """Raised when another application for the post has already been approved."""

    error_code = ErrorCode.POST_ALREADY_FILLED

    def __init__(self):
        super().__init__(message="Another application has already been approved for this post")


# =============================================================================
# Withdrawal Errors
# =============================================================================


class InvalidStateForWithdrawalError(ApplicationStateError):
    """Base class for withdrawal requests made from a disallowed state."""

    error_code = ErrorCode.WITHDRAWAL_INVALID_STATE

    def __init__(self, message: str):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST)


class ApplicationAlreadyWithdrawnError(InvalidStateForWithdrawalError):
    error_code = ErrorCode.WITHDRAWAL_ALREADY_WITHDRAWN

    def __init__(self):
        super().__init__(message="Application is already withdrawn")


class WithdrawalAlreadyRequestedError(InvalidStateForWithdrawalError):
    error_code = ErrorCode.WITHDRAWAL_ALREADY_REQUESTED

    def __init__(self):
        super().__init__(message="Withdrawal request already pending")


class CompletedApplicationWithdrawalError(InvalidStateForWithdrawalError):
    error_code = ErrorCode.WITHDRAWAL_COMPLETED

    def __init__(self):
        super().__init__(message="Cannot withdraw completed application")


class NoPendingWithdrawalError(ApplicationStateError):
    """Raised when an admin decides on an application without a pending request."""

    error_code = ErrorCode.WITHDRAWAL_NOT_PENDING

    def __init__(self, current_status: str):
        self.current_status = current_status
        super().__init__(
            message="This application does not have a pending withdrawal request",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


# =============================================================================
# Operation Errors
# =============================================================================


class DatabaseOperationError(LifecycleServiceException):
    """Raised when a database operation fails."""

    error_code = ErrorCode.DATABASE_ERROR

    def __init__(self, detail: str):
        super().__init__(
            detail=f"Database operation failed: {detail}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class DatabaseConnectionError(DatabaseOperationError):
    """Raised when database connection fails."""

    error_code = ErrorCode.DATABASE_CONNECTION_ERROR

    def __init__(self):
        super().__init__(detail="Unable to connect to database")


# =============================================================================
# Rate Limiting Errors
# =============================================================================


class RateLimitError(LifecycleServiceException):
    """Raised when rate limit is exceeded."""

    error_code = ErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            detail=f"Rate limit exceeded. Retry after {retry_after} seconds",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        )


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthenticationError(LifecycleServiceException):
    """Base class for authentication errors."""

    error_code = ErrorCode.UNAUTHORIZED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(detail=message, status_code=status.HTTP_401_UNAUTHORIZED)


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""

    error_code = ErrorCode.AUTH_TOKEN_EXPIRED

    def __init__(self):
        super().__init__(message="Token has expired")


class InvalidTokenError(AuthenticationError):
    """Raised when JWT token is invalid."""

    error_code = ErrorCode.AUTH_TOKEN_INVALID

    def __init__(self):
        super().__init__(message="Invalid authentication token")


class InsufficientPermissionsError(LifecycleServiceException):
    """Raised when user doesn't have required permissions."""

    error_code = ErrorCode.FORBIDDEN

    def __init__(self, required_permission: str | None = None):
        message = "Insufficient permissions"
        if required_permission:
            message += f": requires {required_permission}"
        super().__init__(detail=message, status_code=status.HTTP_403_FORBIDDEN)


class ApplicationOwnershipError(LifecycleServiceException):
    """Raised when a candidate acts on an application that is not theirs."""

    error_code = ErrorCode.APPLICATION_NOT_OWNED

    def __init__(self):
        super().__init__(
            detail="Unauthorized to withdraw this application",
            status_code=status.HTTP_403_FORBIDDEN,
        )


# =============================================================================
# Handlers
# =============================================================================


async def lifecycle_exception_handler(request: Request, exc: LifecycleServiceException) -> JSONResponse:
    body = dict(exc.detail)
    body["path"] = request.url.path
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        ErrorDetail(
            code=ErrorCode.VALIDATION_ERROR,
            message=error.get("msg", "Invalid value"),
            field=".".join(str(part) for part in error.get("loc", ()) if part != "body") or None,
        )
        for error in exc.errors()
    ]
    response = ErrorResponse.create(
        error_type="ValidationError",
        code=ErrorCode.VALIDATION_ERROR,
        message="Invalid request body",
        details=details,
        path=request.url.path,
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=response.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error envelope handlers on the FastAPI app."""
    app.add_exception_handler(LifecycleServiceException, lifecycle_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
