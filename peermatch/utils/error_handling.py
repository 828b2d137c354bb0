"""
Unified error handling utilities for the peer matching service.

This module provides the application exception hierarchy and helpers that
classify and log errors consistently across the matching core.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from peermatch.core.constants import ErrorCodes, ErrorMessages

logger = logging.getLogger(__name__)


class BaseApplicationError(Exception):
    """
    Base exception class for all application-specific errors.

    Provides structured error information with error codes, correlation IDs,
    and additional context for debugging and user feedback.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCodes.SYSTEM_INTERNAL_ERROR,
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
        user_message: Optional[str] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.correlation_id = correlation_id
        self.details = details or {}
        self.original_error = original_error
        self.user_message = user_message or message
        self.timestamp = datetime.now(timezone.utc)

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary format for API responses."""
        error_dict = {
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }

        if self.correlation_id:
            error_dict["correlation_id"] = self.correlation_id

        if self.original_error:
            error_dict["original_error"] = {
                "type": type(self.original_error).__name__,
                "message": str(self.original_error),
            }

        return error_dict

    def log_error(self, logger_instance: Optional[logging.Logger] = None):
        """Log error with appropriate level and context."""
        log = logger_instance or logger

        error_context = {
            "error_code": self.error_code,
            "correlation_id": self.correlation_id,
            "details": self.details,
        }

        if self.original_error:
            log.error(
                f"Application error: {self.message}",
                extra=error_context,
                exc_info=self.original_error,
            )
        else:
            log.error(f"Application error: {self.message}", extra=error_context)


class InputError(BaseApplicationError):
    """A malformed matching request, rejected before any scoring occurs."""

    def __init__(self, errors: List[str], correlation_id: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(
            message=ErrorMessages.get_message(
                ErrorCodes.VALIDATION_INVALID_REQUEST, details="; ".join(self.errors)
            ),
            error_code=ErrorCodes.VALIDATION_INVALID_REQUEST,
            correlation_id=correlation_id,
            details={"errors": self.errors},
            user_message="Please check your matching request and try again.",
        )


class ResourceNotFoundError(BaseApplicationError):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
        error_code: str = ErrorCodes.RESOURCE_PROFILE_NOT_FOUND,
        **kwargs,
    ):
        if resource_id:
            message = f"{resource_type} with ID '{resource_id}' not found"
        else:
            message = f"{resource_type} not found"

        details = kwargs.pop("details", {})
        details.update({"resource_type": resource_type, "resource_id": resource_id})

        kwargs.setdefault(
            "user_message", f"The requested {resource_type.lower()} could not be found."
        )
        super().__init__(
            message=message,
            error_code=error_code,
            correlation_id=correlation_id,
            details=details,
            **kwargs,
        )


class ProfileNotFoundError(ResourceNotFoundError):
    """The requester's profile is missing; fatal to a single match call."""

    def __init__(self, user_id: str, correlation_id: Optional[str] = None):
        super().__init__(
            resource_type="Profile",
            resource_id=user_id,
            correlation_id=correlation_id,
            error_code=ErrorCodes.RESOURCE_PROFILE_NOT_FOUND,
            user_message="Please complete your profile before looking for a partner.",
        )
        self.user_id = user_id


class QueueError(BaseApplicationError):
    """Base class for queue lifecycle errors."""


class DuplicateQueueEntryError(QueueError):
    """The user already has a waiting entry in the queue."""

    def __init__(self, user_id: str, correlation_id: Optional[str] = None):
        super().__init__(
            message=ErrorMessages.get_message(ErrorCodes.BUSINESS_ALREADY_QUEUED, user_id=user_id),
            error_code=ErrorCodes.BUSINESS_ALREADY_QUEUED,
            correlation_id=correlation_id,
            details={"user_id": user_id},
            user_message="You are already waiting for a partner.",
        )
        self.user_id = user_id


class ConcurrencyConflictError(QueueError):
    """A candidate was claimed by a racing match attempt."""

    def __init__(self, user_id: str, correlation_id: Optional[str] = None):
        super().__init__(
            message=ErrorMessages.get_message(
                ErrorCodes.BUSINESS_CANDIDATE_ALREADY_CLAIMED, user_id=user_id
            ),
            error_code=ErrorCodes.BUSINESS_CANDIDATE_ALREADY_CLAIMED,
            correlation_id=correlation_id,
            details={"user_id": user_id},
        )
        self.user_id = user_id


class MalformedQueueEntryError(QueueError):
    """A stored queue record could not be decoded."""

    def __init__(self, details: str, raw: Any = None):
        super().__init__(
            message=ErrorMessages.get_message(
                ErrorCodes.PROCESSING_MALFORMED_QUEUE_ENTRY, details=details
            ),
            error_code=ErrorCodes.PROCESSING_MALFORMED_QUEUE_ENTRY,
            details={"raw": str(raw)[:200]} if raw is not None else {},
        )


class QueueBackendError(QueueError):
    """The shared queue backend could not be reached."""

    def __init__(self, operation: str, original_error: Optional[Exception] = None):
        super().__init__(
            message=ErrorMessages.get_message(ErrorCodes.SERVICE_REDIS_UNAVAILABLE),
            error_code=ErrorCodes.SERVICE_REDIS_UNAVAILABLE,
            details={"operation": operation},
            original_error=original_error,
            user_message="Matching is temporarily unavailable. Please try again later.",
        )
        self.operation = operation


class CollaboratorTimeoutError(BaseApplicationError):
    """A collaborator call exceeded its time budget."""

    def __init__(self, operation: str, timeout_seconds: float, correlation_id: Optional[str] = None):
        super().__init__(
            message=ErrorMessages.get_message(
                ErrorCodes.SERVICE_TIMEOUT, timeout_seconds=timeout_seconds
            ),
            error_code=ErrorCodes.SERVICE_TIMEOUT,
            correlation_id=correlation_id,
            details={"operation": operation, "timeout_seconds": timeout_seconds},
            user_message="Matching is taking longer than usual. You remain in the queue.",
        )
        self.operation = operation
        self.timeout_seconds = timeout_seconds


class ConfigurationError(BaseApplicationError):
    """Configuration-related error."""

    def __init__(self, details: str):
        super().__init__(
            message=ErrorMessages.get_message(ErrorCodes.SYSTEM_CONFIGURATION_ERROR, details=details),
            error_code=ErrorCodes.SYSTEM_CONFIGURATION_ERROR,
        )


class DegradedInputWarning(UserWarning):
    """Category for profile data gaps that degrade scoring but never abort it."""


class ErrorHandler:
    """
    Centralized error handling utility class.

    Provides methods for error classification and logging.
    """

    _STATUS_CODES: Dict[str, int] = {
        ErrorCodes.VALIDATION_INVALID_REQUEST: 400,
        ErrorCodes.RESOURCE_PROFILE_NOT_FOUND: 404,
        ErrorCodes.PROCESSING_MALFORMED_QUEUE_ENTRY: 500,
        ErrorCodes.SERVICE_REDIS_UNAVAILABLE: 503,
        ErrorCodes.SERVICE_TIMEOUT: 504,
        ErrorCodes.SYSTEM_INTERNAL_ERROR: 500,
        ErrorCodes.SYSTEM_CONFIGURATION_ERROR: 500,
        ErrorCodes.BUSINESS_ALREADY_QUEUED: 409,
        ErrorCodes.BUSINESS_CANDIDATE_ALREADY_CLAIMED: 409,
    }

    @staticmethod
    def classify_error(error: Exception) -> Dict[str, Any]:
        """
        Classify error and determine appropriate response information.

        Args:
            error: Exception to classify

        Returns:
            Dictionary with error classification information
        """
        if isinstance(error, BaseApplicationError):
            status_code = ErrorHandler._STATUS_CODES.get(error.error_code, 500)
            return {
                "type": "application_error",
                "error_code": error.error_code,
                "message": error.message,
                "user_message": error.user_message,
                "status_code": status_code,
                "details": error.details,
                "log_level": "warning" if status_code < 500 else "error",
            }

        if isinstance(error, (TimeoutError, ConnectionError)):
            return {
                "type": "service_error",
                "error_code": ErrorCodes.SERVICE_TIMEOUT
                if isinstance(error, TimeoutError)
                else ErrorCodes.SERVICE_REDIS_UNAVAILABLE,
                "message": str(error),
                "user_message": "Service temporarily unavailable. Please try again later.",
                "status_code": 504 if isinstance(error, TimeoutError) else 503,
                "details": {},
                "log_level": "warning",
            }

        return {
            "type": "unknown_error",
            "error_code": ErrorCodes.SYSTEM_INTERNAL_ERROR,
            "message": str(error),
            "user_message": "An unexpected error occurred. Please try again later.",
            "status_code": 500,
            "details": {"error_type": type(error).__name__, "error_message": str(error)},
            "log_level": "error",
        }

    @staticmethod
    def log_error(
        error: Exception,
        correlation_id: Optional[str] = None,
        additional_context: Optional[Dict[str, Any]] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Log error with the level its classification asks for."""
        log = logger_instance or logger

        error_info = ErrorHandler.classify_error(error)

        log_context = {
            "error_type": error_info["type"],
            "error_code": error_info["error_code"],
            "correlation_id": correlation_id,
            "details": error_info["details"],
        }
        if additional_context:
            log_context.update(additional_context)

        log_message = f"Error occurred: {error_info['message']}"
        if error_info["log_level"] == "error":
            log.error(log_message, extra=log_context, exc_info=error)
        else:
            log.warning(log_message, extra=log_context)
