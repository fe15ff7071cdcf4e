from dataclasses import dataclass, field

from docpipe.config.settings import Settings
from docpipe.intelligence.models import AIClassification


@dataclass(frozen=True)
class SignalScores:
    """Raw sub-scores in [0, 1] before weighting."""

    keyword: float = 0.0
    pattern: float = 0.0
    ai: float = 0.0


@dataclass(frozen=True)
class AlternativeCategory:
    category: str
    confidence: float


@dataclass(frozen=True)
class ClassificationRules:
    keyword_weight: float = 0.3
    pattern_weight: float = 0.4
    ai_weight: float = 0.3
    minimum_confidence: float = 0.6

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClassificationRules":
        return cls(
            keyword_weight=settings.classifier_keyword_weight,
            pattern_weight=settings.classifier_pattern_weight,
            ai_weight=settings.classifier_ai_weight,
            minimum_confidence=settings.classifier_minimum_confidence,
        )


@dataclass(frozen=True)
class ClassifyOptions:
    """Per-call options.

    ``ai_signal`` is used as-is when given; otherwise the classifier asks the
    document intelligence client itself.
    """

    force_refresh: bool = False
    ai_signal: AIClassification | None = None


@dataclass(frozen=True)
class ClassificationResult:
    category: str
    confidence: float
    reason: str
    labels: dict[str, str] = field(default_factory=dict)
    alternatives: tuple[AlternativeCategory, ...] = ()
    signals: SignalScores = field(default_factory=SignalScores)
    scores: dict[str, float] = field(default_factory=dict)
    matched_keywords: tuple[str, ...] = ()
    fingerprint: str = ""
    language: str = ""
    error: bool = False
