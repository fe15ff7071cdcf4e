from dataclasses import dataclass, field
from typing import TypeVar

from docpipe.classification.models import ClassificationResult
from docpipe.documents.models import DocumentDescriptor, FileInfo
from docpipe.intelligence.models import ProcessingAnalysis

VALIDATION = "validation"
EXTRACTION = "extraction"
PROCESSING = "processing"
CLASSIFICATION = "classification"
FORMATTING = "formatting"
OUTPUT = "output"

STAGE_ORDER: tuple[str, ...] = (
    VALIDATION,
    EXTRACTION,
    PROCESSING,
    CLASSIFICATION,
    FORMATTING,
    OUTPUT,
)

OUTPUT_FORMATS: frozenset[str] = frozenset({"structured", "compact", "detailed"})

T = TypeVar("T")


@dataclass(frozen=True)
class ProcessingOptions:
    """Which sub-steps run for one document, and how its output is shaped."""

    language: str = "english"
    enable_classification: bool = True
    enable_summary: bool = True
    enable_data_extraction: bool = True
    enable_ocr: bool = True
    enable_naming: bool = True
    output_format: str = "structured"
    force_refresh: bool = False

    def __post_init__(self) -> None:
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"Unknown output format '{self.output_format}'. "
                f"Choose from: {sorted(OUTPUT_FORMATS)}"
            )

    def enabled_features(self) -> dict[str, bool]:
        return {
            "classification": self.enable_classification,
            "summary": self.enable_summary,
            "data_extraction": self.enable_data_extraction,
            "ocr": self.enable_ocr,
            "naming": self.enable_naming,
        }


@dataclass(frozen=True)
class StageResult:
    stage: str
    success: bool
    duration_ms: float
    payload: object | None = None
    error: str | None = None


@dataclass(frozen=True)
class StageMetric:
    duration_ms: float
    success: bool
    efficiency: str

    @classmethod
    def of(cls, result: StageResult) -> "StageMetric":
        if result.duration_ms < 5000:
            efficiency = "high"
        elif result.duration_ms < 15000:
            efficiency = "medium"
        else:
            efficiency = "low"
        return cls(duration_ms=result.duration_ms, success=result.success, efficiency=efficiency)


@dataclass(frozen=True)
class ValidationPayload:
    file: FileInfo
    file_category: str


@dataclass(frozen=True)
class ExtractionPayload:
    text: str
    method: str
    metadata: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class FormattedResult:
    """All stage payloads of one run merged into a single record."""

    file: FileInfo
    file_category: str
    classification: ClassificationResult
    analysis: ProcessingAnalysis
    extraction_metadata: dict[str, object]
    language: str
    enabled_features: dict[str, bool]
    performance: dict[str, float]


@dataclass(frozen=True)
class PipelineInfo:
    version: str
    stages: tuple[str, ...]
    total_duration_ms: float


@dataclass(frozen=True)
class PipelineOutput:
    """Final output of a successful run.

    ``document`` is the view selected by the output format; ``formatted`` keeps
    the full record regardless of format.
    """

    format: str
    generated_at: str
    quality_score: float
    pipeline: PipelineInfo
    document: dict[str, object]
    formatted: FormattedResult


@dataclass(slots=True)
class ProcessingContext:
    """Mutable scratch state owned by exactly one orchestrator run."""

    processing_id: str
    document: DocumentDescriptor
    options: ProcessingOptions
    raw_bytes: bytes = b""
    stage_results: dict[str, StageResult] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def payload(self, stage: str, expected: type[T]) -> T | None:
        result = self.stage_results.get(stage)
        if result is None or not result.success or not isinstance(result.payload, expected):
            return None
        return result.payload


@dataclass(frozen=True)
class PipelineResult:
    processing_id: str
    success: bool
    file: FileInfo
    language: str
    duration_ms: float
    stages: tuple[str, ...] = ()
    output: PipelineOutput | None = None
    failed_stage: str | None = None
    error: str | None = None
    stage_results: dict[str, StageResult] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()
    stage_metrics: dict[str, StageMetric] = field(default_factory=dict)
