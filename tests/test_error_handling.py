import logging

from peermatch.core.constants import ErrorCodes
from peermatch.utils.error_handling import (
    DuplicateQueueEntryError,
    ErrorHandler,
    ProfileNotFoundError,
    QueueBackendError,
)


def test_profile_not_found_to_dict():
    data = ProfileNotFoundError("learner", correlation_id="req-1").to_dict()

    assert data["error_code"] == ErrorCodes.RESOURCE_PROFILE_NOT_FOUND
    assert data["message"] == "Profile with ID 'learner' not found"
    assert data["user_message"] == "Please complete your profile before looking for a partner."
    assert data["details"] == {"resource_type": "Profile", "resource_id": "learner"}
    assert data["correlation_id"] == "req-1"
    assert "original_error" not in data


def test_backend_error_carries_original_error():
    error = QueueBackendError("claim_pair", original_error=ConnectionError("refused"))

    data = error.to_dict()

    assert data["original_error"] == {"type": "ConnectionError", "message": "refused"}
    assert data["details"] == {"operation": "claim_pair"}
    assert ErrorHandler.classify_error(error)["status_code"] == 503


def test_log_error_includes_error_code(caplog):
    error = QueueBackendError("list_entries", original_error=ConnectionError("refused"))

    with caplog.at_level(logging.ERROR, logger="peermatch.utils.error_handling"):
        error.log_error()

    [record] = caplog.records
    assert record.error_code == ErrorCodes.SERVICE_REDIS_UNAVAILABLE
    assert record.details == {"operation": "list_entries"}
    assert record.exc_info is not None


def test_handler_logs_client_errors_as_warnings(caplog):
    error = DuplicateQueueEntryError("learner")

    with caplog.at_level(logging.WARNING, logger="peermatch.utils.error_handling"):
        ErrorHandler.log_error(error, additional_context={"operation": "admit"})

    [record] = caplog.records
    assert record.levelno == logging.WARNING
    assert record.error_code == ErrorCodes.BUSINESS_ALREADY_QUEUED
    assert record.operation == "admit"


def test_unknown_errors_are_internal():
    info = ErrorHandler.classify_error(RuntimeError("boom"))

    assert info["error_code"] == ErrorCodes.SYSTEM_INTERNAL_ERROR
    assert info["details"] == {"error_type": "RuntimeError", "error_message": "boom"}
