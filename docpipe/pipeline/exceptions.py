class PipelineError(Exception):
    """Base exception for all per-document pipeline errors."""

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


class ValidationError(PipelineError):
    """Raised for empty, oversized or unsupported documents. Terminal for the document."""


class ExtractionError(PipelineError):
    """Raised when local text extraction fails."""


class AIProcessingError(PipelineError):
    """Raised when a document intelligence call fails during processing."""


class ClassificationError(PipelineError):
    """Raised when classification cannot start because its inputs are missing."""


class StageTimeoutError(PipelineError):
    """Raised when a stage exceeds its allotted time."""


class FormattingError(PipelineError):
    """Raised when a stage output needed for formatting is missing."""
