"""Custom exception classes for the booking service.

Each error kind carries a stable ``code`` so clients can render
"slot taken", "not allowed", "try again" and so on without parsing messages.
"""

from typing import Any, Dict, Optional


class APIException(Exception):
    """Base exception for all API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "status_code": self.status_code,
                "details": self.details,
            }
        }


class AuthenticationError(APIException):
    """Exception raised for authentication failures."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=401,
            code="AUTHENTICATION_ERROR",
            details=details,
        )


class ForbiddenError(APIException):
    """Raised when the requester's role or ownership does not allow the action."""

    def __init__(
        self,
        message: str = "Not allowed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=403,
            code="FORBIDDEN",
            details=details,
        )


class NotFoundError(APIException):
    """Exception raised when a resource is not found."""

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        if resource_id:
            message += f" with id: {resource_id}"
        error_details = details or {}
        error_details["resource"] = resource
        if resource_id:
            error_details["resource_id"] = resource_id
        super().__init__(
            message=message,
            status_code=404,
            code="NOT_FOUND",
            details=error_details,
        )


class InvalidRangeError(APIException):
    """Raised for zero/negative-length, wrong-width or off-grid time ranges."""

    def __init__(
        self,
        message: str = "Invalid time range",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=422,
            code="INVALID_RANGE",
            details=details,
        )


class SlotUnavailableError(APIException):
    """Raised when a requested slot is not bookable (taken, break, day off, outside hours)."""

    def __init__(
        self,
        message: str = "Requested slot is no longer available",
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if reason:
            error_details["reason"] = reason
        super().__init__(
            message=message,
            status_code=409,
            code="SLOT_UNAVAILABLE",
            details=error_details,
        )


class InvalidTransitionError(APIException):
    """Raised when a status change is not an edge of the appointment workflow."""

    def __init__(
        self,
        current_status: str,
        requested_status: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        error_details["current_status"] = current_status
        error_details["requested_status"] = requested_status
        super().__init__(
            message=f"Cannot change appointment status from {current_status} to {requested_status}",
            status_code=409,
            code="INVALID_TRANSITION",
            details=error_details,
        )


class ConflictError(APIException):
    """Exception raised when a resource changed since the caller last read it."""

    def __init__(
        self,
        message: str = "Resource conflict",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=409,
            code="CONFLICT",
            details=details,
        )


class StorageError(APIException):
    """Transient storage failure or timeout. Safe for the caller to retry."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        error_details["retryable"] = True
        super().__init__(
            message=message,
            status_code=503,
            code="STORAGE_ERROR",
            details=error_details,
        )
