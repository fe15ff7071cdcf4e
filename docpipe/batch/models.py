from dataclasses import dataclass, field
from datetime import datetime

from docpipe.documents.models import DocumentDescriptor
from docpipe.intelligence.models import CollectiveInsight
from docpipe.pipeline.models import PipelineResult, ProcessingOptions

SUCCEEDED = "succeeded"
FAILED = "failed"
CANCELLED = "cancelled"


@dataclass(frozen=True)
class DocumentOutcome:
    """Result entry for one accepted document, whatever happened to it."""

    document_name: str
    status: str
    attempts: int = 0
    result: PipelineResult | None = None
    error: str | None = None

    @classmethod
    def from_result(cls, result: PipelineResult, attempts: int) -> "DocumentOutcome":
        return cls(
            document_name=result.file.name,
            status=SUCCEEDED if result.success else FAILED,
            attempts=attempts,
            result=result,
            error=result.error,
        )

    @classmethod
    def cancelled(cls, document: DocumentDescriptor) -> "DocumentOutcome":
        return cls(
            document_name=document.name,
            status=CANCELLED,
            error="Batch processing cancelled",
        )

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED


@dataclass(frozen=True)
class DroppedDocument:
    document_name: str
    reason: str


@dataclass(frozen=True)
class BatchStatistics:
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    dropped: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None
    average_processing_time_ms: float = 0.0


@dataclass(slots=True)
class BatchJob:
    """Live state of one ``process_batch`` invocation."""

    batch_id: str
    documents: list[DocumentDescriptor]
    options: ProcessingOptions
    accepted: list[DocumentDescriptor] = field(default_factory=list)
    dropped: list[DroppedDocument] = field(default_factory=list)
    results: list[DocumentOutcome] = field(default_factory=list)
    batch_count: int = 0
    current_batch: int = 0


@dataclass(frozen=True)
class BatchReport:
    batch_id: str
    statistics: BatchStatistics
    results: tuple[DocumentOutcome, ...]
    dropped: tuple[DroppedDocument, ...] = ()
    collective_insight: CollectiveInsight | None = None
    cancelled: bool = False


@dataclass(frozen=True)
class BatchStatus:
    is_processing: bool
    batch_id: str | None = None
    current_batch: int = 0
    batch_count: int = 0
    statistics: BatchStatistics = field(default_factory=BatchStatistics)
