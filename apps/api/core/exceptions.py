"""
Custom exception classes and error handling.

Provides consistent error responses across the API and a single mapping
from exceptions to the structured error shape used in sync results.
"""
from enum import Enum
from fastapi import HTTPException, status
from typing import Optional, Dict, Any

GENERIC_INTERNAL_MESSAGE = "Internal server error"


class ErrorCode(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DOC_LOCKED = "DOC_LOCKED"
    DOC_NOT_YET_AVAILABLE = "DOC_NOT_YET_AVAILABLE"
    CLOCK_SKEW_REJECTED = "CLOCK_SKEW_REJECTED"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class APIException(HTTPException):
    """Base API exception with consistent structure."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.details = details

    @property
    def message(self) -> str:
        return self.detail

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.error_code.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(APIException):
    """Malformed content, incomplete reflection or bad batch (caller fault)."""

    def __init__(self, detail: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details,
        )


class DocLockedError(APIException):
    """Edit attempted outside the editable window. Never retryable for that key."""

    def __init__(self, doc_key: str):
        super().__init__(
            status_code=status.HTTP_423_LOCKED,
            detail=f"Document {doc_key} is locked",
            error_code=ErrorCode.DOC_LOCKED,
            details={"docKey": doc_key},
        )


class DocNotYetAvailableError(APIException):
    """Read before the availability window opens. Retryable later."""

    def __init__(self, doc_key: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Document {doc_key} is not yet available",
            error_code=ErrorCode.DOC_NOT_YET_AVAILABLE,
            details={"docKey": doc_key},
        )


class ClockSkewRejectedError(APIException):
    """Client clock too far ahead of the server."""

    def __init__(self, client_time: str, server_time: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Client time {client_time} differs from server time {server_time}",
            error_code=ErrorCode.CLOCK_SKEW_REJECTED,
            details={"clientTime": client_time, "serverTime": server_time},
        )


class RateLimitedError(APIException):

    def __init__(self, detail: str = "Too many requests"):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            error_code=ErrorCode.RATE_LIMITED,
        )


class UnauthorizedError(APIException):
    """Authentication required."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=ErrorCode.UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(APIException):
    """Access denied."""

    def __init__(self, detail: str = "Access denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=ErrorCode.FORBIDDEN,
        )


class InternalError(APIException):
    """
    Storage or infrastructure failure. Retryable with backoff.

    The message given here is for logs only; clients always see the
    generic message.
    """

    def __init__(self, detail: str = GENERIC_INTERNAL_MESSAGE):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code=ErrorCode.INTERNAL_ERROR,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.error_code.value, "message": GENERIC_INTERNAL_MESSAGE}


def to_api_error(exc: BaseException) -> Dict[str, Any]:
    """Map any exception to the structured {code, message, details} error shape."""
    if isinstance(exc, APIException):
        return exc.to_dict()
    return {"code": ErrorCode.INTERNAL_ERROR.value, "message": GENERIC_INTERNAL_MESSAGE}
