class BatchError(Exception):
    """Base error for batch processing."""


class BatchValidationError(BatchError):
    """Raised when a submitted batch is rejected before queuing."""


class BatchNotFoundError(BatchError):
    """Raised when a batch does not exist or belongs to another user."""
