from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MESSAGE_FORMAT_ERROR = "MESSAGE_FORMAT_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    PERMANENT_ERROR = "PERMANENT_ERROR"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    TRANSIENT_UPSTREAM_ERROR = "TRANSIENT_UPSTREAM_ERROR"
    FATAL_BATCH_ERROR = "FATAL_BATCH_ERROR"
    INVALID_JSON = "INVALID_JSON"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """Base for every expected (non-programmer) failure.

    Each subclass carries the stable code and HTTP status the ErrorClassifier
    reports at the adapter boundary.
    """

    default_code = ErrorCode.INTERNAL_ERROR
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code.value
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    default_code = ErrorCode.VALIDATION_ERROR
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None, code: Optional[str] = None):
        super().__init__(message, code)
        self.errors = errors or []


class MessageFormatError(ValidationError):
    default_code = ErrorCode.MESSAGE_FORMAT_ERROR


class AuthenticationError(AppError):
    default_code = ErrorCode.AUTHENTICATION_ERROR
    status_code = 401


class NotFoundError(AppError):
    default_code = ErrorCode.NOT_FOUND
    status_code = 404


class PermanentError(AppError):
    """Business-rule violation; never retried."""

    default_code = ErrorCode.PERMANENT_ERROR
    status_code = 400


class InsufficientCreditsError(PermanentError):
    default_code = ErrorCode.INSUFFICIENT_CREDITS
    status_code = 429


class ConflictError(PermanentError):
    default_code = ErrorCode.ALREADY_EXISTS
    status_code = 409


class UpstreamServiceError(AppError):
    default_code = ErrorCode.UPSTREAM_ERROR
    status_code = 502

    def __init__(self, message: str, code: Optional[str] = None, retryable: bool = False,
                 details: Optional[dict] = None):
        super().__init__(message, code)
        self.retryable = retryable
        self.details = details


class TransientUpstreamError(UpstreamServiceError):
    """An upstream answered but its response could not be parsed or validated."""

    default_code = ErrorCode.TRANSIENT_UPSTREAM_ERROR

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, code, retryable=True, details=details)


class FatalBatchError(AppError):
    default_code = ErrorCode.FATAL_BATCH_ERROR
    status_code = 500
