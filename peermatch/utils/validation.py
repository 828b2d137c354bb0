"""
Validation utilities for incoming matching requests.

Every problem with a request is collected before anything is raised, so a
caller sees the full list of issues in a single InputError.
"""

from typing import Any, List, Mapping, Set, Union
import logging

from peermatch.core.constants import RequestLimits
from peermatch.domain.matching.value_objects import MatchingRequest, SessionType, Urgency
from peermatch.utils.error_handling import InputError

logger = logging.getLogger(__name__)


class ValidationResult:
    """Represents the result of a validation operation."""

    def __init__(self):
        self.errors: List[str] = []

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str):
        self.errors.append(message)

    def raise_if_invalid(self):
        if self.errors:
            raise InputError(self.errors)


class RequestValidator:
    """Checks matching requests against the request limits."""

    @staticmethod
    def _validate_user_id(user_id: Any, result: ValidationResult):
        if not isinstance(user_id, str) or not user_id.strip():
            result.add_error("Field 'user_id' cannot be empty")

    @staticmethod
    def _validate_skills(skills: Any, result: ValidationResult):
        if isinstance(skills, str) or not hasattr(skills, "__iter__"):
            result.add_error("Field 'preferred_skills' must be a collection of skill names")
            return
        names = list(skills)
        if not names:
            result.add_error("At least one preferred skill is required")
        elif any(not isinstance(name, str) or not name.strip() for name in names):
            result.add_error("Preferred skill names cannot be empty")

    @staticmethod
    def _validate_duration(max_duration: Any, result: ValidationResult):
        minimum = RequestLimits.MIN_SESSION_DURATION_MINUTES
        maximum = RequestLimits.MAX_SESSION_DURATION_MINUTES
        # bool is an int subclass but never a duration
        if isinstance(max_duration, bool) or not isinstance(max_duration, int):
            result.add_error("Field 'max_duration' must be a whole number of minutes")
        elif not minimum <= max_duration <= maximum:
            result.add_error(
                f"Session duration must be between {minimum} and {maximum} minutes"
            )

    @staticmethod
    def validate_request(request: MatchingRequest) -> ValidationResult:
        """
        Validate an already constructed matching request.

        Args:
            request: The request to check

        Returns:
            ValidationResult listing every problem found
        """
        result = ValidationResult()

        RequestValidator._validate_user_id(request.user_id, result)
        RequestValidator._validate_skills(request.preferred_skills, result)
        RequestValidator._validate_duration(request.max_duration, result)

        if not isinstance(request.session_type, SessionType):
            result.add_error(f"Invalid session type: {request.session_type!r}")
        if not isinstance(request.urgency, Urgency):
            result.add_error(f"Invalid urgency level: {request.urgency!r}")

        return result

    @staticmethod
    def validate_payload(data: Mapping[str, Any]) -> ValidationResult:
        """Validate a raw request payload before it becomes a MatchingRequest."""
        result = ValidationResult()

        if not isinstance(data, Mapping):
            result.add_error("Matching request must be an object")
            return result

        for field in ("user_id", "preferred_skills", "session_type", "max_duration", "urgency"):
            if field not in data:
                result.add_error(f"Required field '{field}' is missing")
        if not result.is_valid:
            return result

        RequestValidator._validate_user_id(data["user_id"], result)
        RequestValidator._validate_skills(data["preferred_skills"], result)
        RequestValidator._validate_duration(data["max_duration"], result)

        valid_types = {session_type.value for session_type in SessionType}
        if not RequestValidator._is_choice(data["session_type"], valid_types):
            result.add_error(f"Invalid session type: {data['session_type']!r}")
        valid_urgencies = {urgency.value for urgency in Urgency}
        if not RequestValidator._is_choice(data["urgency"], valid_urgencies):
            result.add_error(f"Invalid urgency level: {data['urgency']!r}")

        return result

    @staticmethod
    def _is_choice(value: Any, choices: Set[str]) -> bool:
        return isinstance(value, str) and value in choices


def ensure_valid_request(request: Union[MatchingRequest, Mapping[str, Any]]) -> MatchingRequest:
    """
    Return a validated MatchingRequest or raise InputError.

    Accepts either a MatchingRequest or its plain dictionary form.
    """
    if isinstance(request, MatchingRequest):
        result = RequestValidator.validate_request(request)
        if not result.is_valid:
            logger.info(f"Rejected matching request: {result.errors}")
        result.raise_if_invalid()
        return request

    result = RequestValidator.validate_payload(request)
    if not result.is_valid:
        logger.info(f"Rejected matching request payload: {result.errors}")
    result.raise_if_invalid()
    return MatchingRequest.from_dict(request)
