"""Workflow error taxonomy.

Every error carries the HTTP status it maps to at the API boundary and
whether the caller may retry the same call later.
"""
from typing import Any, Optional


class WorkflowError(Exception):
    status_code = 500
    error = "Workflow error"
    retryable = False

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "error": self.error,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class ValidationError(WorkflowError):
    status_code = 400
    error = "Validation failed"


class NotFoundError(WorkflowError):
    status_code = 404
    error = "Not found"


class InvalidTransition(WorkflowError):
    status_code = 400
    error = "Invalid transition"

    def __init__(self, message: str, current_status: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, details if details is not None else {"current_status": current_status})
        self.current_status = current_status


class DuplicateActionError(WorkflowError):
    status_code = 429
    error = "Duplicate request"
    retryable = True

    def __init__(self, time_remaining: int):
        super().__init__(
            f"Please wait {time_remaining} seconds before trying again.",
            {"time_remaining": time_remaining},
        )
        self.time_remaining = time_remaining


class PersistenceError(WorkflowError):
    status_code = 500
    error = "Failed to process action"
    retryable = True


class AutoGenerationError(WorkflowError):
    """Child request reconciliation failed. Logged, never surfaced."""
    error = "Auto-generation failed"


class NotificationError(WorkflowError):
    """Notification delivery failed. Logged, never surfaced."""
    error = "Notification failed"
    retryable = True
