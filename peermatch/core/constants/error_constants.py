"""
Error codes and standardized error messages for the peer matching service.
"""

from typing import Dict


class ErrorCodes:
    """Standardized error codes following conventional patterns."""

    # Input Validation (1100-1199)
    VALIDATION_INVALID_REQUEST = "VAL_1106"

    # Resource Not Found (1200-1299)
    RESOURCE_PROFILE_NOT_FOUND = "RES_1201"

    # Processing Errors (1300-1399)
    PROCESSING_MALFORMED_QUEUE_ENTRY = "PROC_1311"

    # External Service Errors (1400-1499)
    SERVICE_REDIS_UNAVAILABLE = "SVC_1402"
    SERVICE_TIMEOUT = "SVC_1407"

    # System Errors (1500-1599)
    SYSTEM_INTERNAL_ERROR = "SYS_1501"
    SYSTEM_CONFIGURATION_ERROR = "SYS_1504"

    # Business Logic Errors (1600-1699)
    BUSINESS_ALREADY_QUEUED = "BIZ_1602"
    BUSINESS_CANDIDATE_ALREADY_CLAIMED = "BIZ_1608"


class ErrorMessages:
    """Standardized error messages corresponding to error codes."""

    MESSAGES: Dict[str, str] = {
        ErrorCodes.VALIDATION_INVALID_REQUEST: "Invalid matching request: {details}",
        ErrorCodes.RESOURCE_PROFILE_NOT_FOUND: "Profile for user '{user_id}' not found",
        ErrorCodes.PROCESSING_MALFORMED_QUEUE_ENTRY: "Queue entry is malformed: {details}",
        ErrorCodes.SERVICE_REDIS_UNAVAILABLE: "Redis queue backend is unavailable",
        ErrorCodes.SERVICE_TIMEOUT: "Collaborator request timeout after {timeout_seconds} seconds",
        ErrorCodes.SYSTEM_INTERNAL_ERROR: "An internal system error occurred",
        ErrorCodes.SYSTEM_CONFIGURATION_ERROR: "System configuration error: {details}",
        ErrorCodes.BUSINESS_ALREADY_QUEUED: "User '{user_id}' already has a waiting queue entry",
        ErrorCodes.BUSINESS_CANDIDATE_ALREADY_CLAIMED: "Candidate '{user_id}' was claimed by another match attempt",
    }

    @classmethod
    def get_message(cls, error_code: str, **kwargs) -> str:
        """Get formatted error message for the given code."""
        template = cls.MESSAGES.get(error_code, cls.MESSAGES[ErrorCodes.SYSTEM_INTERNAL_ERROR])
        try:
            return template.format(**kwargs)
        except KeyError:
            return template
