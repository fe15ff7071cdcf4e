from dataclasses import dataclass, field
from datetime import datetime, timezone


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    emitted_at: datetime = field(default_factory=_now, kw_only=True)


@dataclass(frozen=True)
class StageStarted(Event):
    processing_id: str
    document_name: str
    stage: str


@dataclass(frozen=True)
class StageCompleted(Event):
    processing_id: str
    document_name: str
    stage: str
    duration_ms: float


@dataclass(frozen=True)
class StageFailed(Event):
    processing_id: str
    document_name: str
    stage: str
    error: str
    duration_ms: float


@dataclass(frozen=True)
class PipelineCompleted(Event):
    processing_id: str
    document_name: str
    duration_ms: float


@dataclass(frozen=True)
class PipelineFailed(Event):
    processing_id: str
    document_name: str
    stage: str | None
    error: str


@dataclass(frozen=True)
class DocumentCompleted(Event):
    batch_id: str
    document_name: str
    status: str


@dataclass(frozen=True)
class BatchProgress(Event):
    batch_id: str
    processed: int
    total: int
    batch_index: int
    batch_count: int

    @property
    def percentage(self) -> float:
        return round(self.processed / self.total * 100, 1) if self.total else 100.0


@dataclass(frozen=True)
class BatchCompleted(Event):
    batch_id: str
    total: int
    succeeded: int
    failed: int
    dropped: int
    cancelled: bool = False


@dataclass(frozen=True)
class BatchFailed(Event):
    batch_id: str
    error: str
