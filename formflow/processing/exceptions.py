from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from formflow.processing.models import ProcessingRecord


class ProcessingError(Exception):
    """Base error for processing operations."""


class ProcessingNotFoundError(ProcessingError):
    """Raised when a record does not exist or belongs to another user."""


class ProcessingNotCompletedError(ProcessingError):
    """Raised when a result is requested before the workflow completed."""


class IllegalTransitionError(ProcessingError):
    """Raised when a workflow step change is not allowed."""


class ConcurrentModificationError(ProcessingError):
    """Raised when a record was changed by another writer since it was read."""


class ProcessingFailedError(ProcessingError):
    """Raised when a stage failed; ``record`` holds the recorded errors."""

    def __init__(self, message: str, record: "ProcessingRecord") -> None:
        super().__init__(message)
        self.record = record
