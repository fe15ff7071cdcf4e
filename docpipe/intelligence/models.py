from dataclasses import dataclass, field


@dataclass(frozen=True)
class DocumentContent:
    """Document payload handed to a document intelligence client."""

    name: str
    media_type: str
    data: bytes = field(repr=False)

    @classmethod
    def from_text(cls, name: str, text: str) -> "DocumentContent":
        return cls(name=name, media_type="text/plain", data=text.encode("utf-8"))

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")

    @property
    def is_pdf(self) -> bool:
        return self.media_type == "application/pdf"

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class AIClassification:
    """Category signal reported by the AI for one document."""

    category: str
    confidence: float
    reason: str = ""
    raw_response: str = field(default="", repr=False)
    error: str | None = None


@dataclass(frozen=True)
class ProcessingAnalysis:
    """Outputs of the AI calls issued for one document."""

    summary: str | None = None
    suggested_name: str | None = None
    extracted_data: dict[str, object] | None = None
    ocr_text: str | None = None
    analysis: str | None = None
    ai_classification: AIClassification | None = None


@dataclass(frozen=True)
class CollectiveInsight:
    """Cross-document summary computed once per batch."""

    document_count: int
    available: bool = True
    overview: str = ""
    patterns: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    summary: str = ""
    organization_suggestions: dict[str, object] = field(default_factory=dict)
    error: str | None = None
    generated_at: str = ""

    @classmethod
    def unavailable(cls, document_count: int, error: str, generated_at: str = "") -> "CollectiveInsight":
        return cls(
            document_count=document_count,
            available=False,
            overview="Insights unavailable",
            summary=f"Collective insight generation failed: {error}",
            error=error,
            generated_at=generated_at,
        )
