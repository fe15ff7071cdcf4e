class BatchError(Exception):
    """Base exception for batch scheduling errors."""


class BatchInProgressError(BatchError):
    """Raised when a batch is started while another one runs on the same scheduler."""
