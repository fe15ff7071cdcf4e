import asyncio
import dataclasses

from docpipe.classification.cache import ClassificationCache, document_fingerprint
from docpipe.classification.categories import (
    DEFAULT_CATEGORIES,
    OTHER_CATEGORY,
    CategoryDefinition,
    category_aliases,
)
from docpipe.classification.models import (
    AlternativeCategory,
    ClassificationResult,
    ClassificationRules,
    ClassifyOptions,
    SignalScores,
)
from docpipe.documents.file_loader import FileLoader
from docpipe.documents.models import DocumentDescriptor
from docpipe.intelligence.analyst import DocumentAnalyst
from docpipe.intelligence.exceptions import IntelligenceConfigurationError, IntelligenceError
from docpipe.intelligence.models import AIClassification, DocumentContent
from docpipe.intelligence.response_parser import LOW_AI_CONFIDENCE, CategoryMapper
from docpipe.logging.logger import Log

MAX_ALTERNATIVES = 3


class HybridClassifier:
    """Fuses keyword, pattern and AI signals into one category decision.

    For every category the combined score is
    ``keyword * Wk + pattern * Wp + ai * Wa``; the highest score wins, ties go
    to the category listed first, and a winner below the minimum confidence is
    replaced by ``other`` while keeping its score as the confidence.
    """

    def __init__(
        self,
        *,
        analyst: DocumentAnalyst | None = None,
        rules: ClassificationRules | None = None,
        categories: tuple[CategoryDefinition, ...] = DEFAULT_CATEGORIES,
        cache: ClassificationCache | None = None,
        file_loader: FileLoader | None = None,
    ) -> None:
        self._analyst = analyst
        self._rules = rules or ClassificationRules()
        self._categories: dict[str, CategoryDefinition] = {c.key: c for c in categories}
        self._cache = cache if cache is not None else ClassificationCache()
        self._file_loader = file_loader or FileLoader()
        self._mapper = CategoryMapper(category_aliases(tuple(self._categories.values())))

    @property
    def rules(self) -> ClassificationRules:
        return self._rules

    @property
    def category_mapper(self) -> CategoryMapper:
        return self._mapper

    def category_names(self) -> list[str]:
        return [category.english for category in self._categories.values()]

    async def classify(
        self,
        document: DocumentDescriptor | str,
        language: str,
        options: ClassifyOptions | None = None,
        *,
        text: str | None = None,
    ) -> ClassificationResult:
        """Classify a file-backed document or a piece of inline text.

        Args:
            document: Descriptor of a file, or the text itself.
            language: Language the AI should answer in.
            options: Cache refresh and a precomputed AI signal.
            text: Already extracted text for a descriptor; read from the file otherwise.

        Never raises except for client misconfiguration: failures yield
        ``other`` with a low confidence and ``error=True``, and are not cached.
        """
        options = options or ClassifyOptions()
        fingerprint = document_fingerprint(document)
        if not options.force_refresh:
            cached = self._cache.get(fingerprint)
            if cached is not None:
                Log.debug(f"Classification cache hit: {fingerprint}")
                return cached

        try:
            content_text = await self._resolve_text(document, text)
            ai_signal = options.ai_signal or await self._request_ai_signal(document, language)
            result = self._combine(content_text, ai_signal, fingerprint, language)
        except IntelligenceConfigurationError:
            raise
        except Exception as exc:
            Log.exception(f"Classification failed for {fingerprint}: {exc}")
            return ClassificationResult(
                category=OTHER_CATEGORY,
                confidence=LOW_AI_CONFIDENCE,
                reason=f"Classification failed: {exc}",
                labels=self._categories[OTHER_CATEGORY].labels,
                fingerprint=fingerprint,
                language=language,
                error=True,
            )

        self._cache.set(fingerprint, result)
        return result

    def keyword_scores(self, text: str) -> dict[str, tuple[float, list[str]]]:
        """Per category: fraction of its keywords found in ``text`` and the matches."""
        lowered = text.lower()
        scores: dict[str, tuple[float, list[str]]] = {}
        for key, category in self._categories.items():
            found = [keyword for keyword in category.keywords if keyword in lowered]
            score = len(found) / len(category.keywords) if category.keywords else 0.0
            scores[key] = (score, found)
        return scores

    def pattern_scores(self, text: str) -> dict[str, float]:
        """Per category: fraction of its patterns matching ``text``."""
        scores: dict[str, float] = {}
        for key, category in self._categories.items():
            matched = sum(1 for pattern in category.patterns if pattern.search(text))
            scores[key] = matched / len(category.patterns) if category.patterns else 0.0
        return scores

    def add_category(self, definition: CategoryDefinition) -> None:
        """Add a category, or replace the one with the same key in place."""
        self._categories[definition.key] = definition
        self._mapper = CategoryMapper(category_aliases(tuple(self._categories.values())))

    def update_rules(self, **changes: float) -> ClassificationRules:
        self._rules = dataclasses.replace(self._rules, **changes)
        return self._rules

    def is_cached(self, document: DocumentDescriptor | str) -> bool:
        return document_fingerprint(document) in self._cache

    def clear_cache(self) -> None:
        self._cache.clear()

    def statistics(self) -> dict[str, object]:
        return {
            "cache_size": len(self._cache),
            "categories": list(self._categories),
            "total_categories": len(self._categories),
            "rules": dataclasses.asdict(self._rules),
        }

    def _combine(
        self,
        text: str,
        ai_signal: AIClassification,
        fingerprint: str,
        language: str,
    ) -> ClassificationResult:
        keyword_scores = self.keyword_scores(text)
        pattern_scores = self.pattern_scores(text)
        rules = self._rules

        signals: dict[str, SignalScores] = {}
        combined: dict[str, float] = {}
        for key in self._categories:
            signal = SignalScores(
                keyword=keyword_scores[key][0],
                pattern=pattern_scores[key],
                ai=ai_signal.confidence if ai_signal.category == key else 0.0,
            )
            signals[key] = signal
            combined[key] = (
                signal.keyword * rules.keyword_weight
                + signal.pattern * rules.pattern_weight
                + signal.ai * rules.ai_weight
            )

        best_category, best_score = OTHER_CATEGORY, 0.0
        for key, score in combined.items():
            if score > best_score:
                best_category, best_score = key, score

        category = best_category if best_score >= rules.minimum_confidence else OTHER_CATEGORY
        alternatives = sorted(
            ((key, score) for key, score in combined.items() if key != category),
            key=lambda item: item[1],
            reverse=True,
        )[:MAX_ALTERNATIVES]

        return ClassificationResult(
            category=category,
            confidence=min(best_score, 1.0),
            reason=self._reason(category, keyword_scores, signals, ai_signal),
            labels=self._categories[category].labels,
            alternatives=tuple(
                AlternativeCategory(category=key, confidence=min(score, 1.0))
                for key, score in alternatives
            ),
            signals=signals[category],
            scores=combined,
            matched_keywords=tuple(keyword_scores[category][1]),
            fingerprint=fingerprint,
            language=language,
        )

    def _reason(
        self,
        category: str,
        keyword_scores: dict[str, tuple[float, list[str]]],
        signals: dict[str, SignalScores],
        ai_signal: AIClassification,
    ) -> str:
        reasons: list[str] = []
        found = keyword_scores[category][1]
        if found:
            reasons.append(f"Keywords found: {', '.join(found)}")
        category_def = self._categories[category]
        if signals[category].pattern > 0:
            matched = round(signals[category].pattern * len(category_def.patterns))
            reasons.append(f"Patterns matched: {matched}")
        if ai_signal.category == category and ai_signal.reason:
            reasons.append(f"AI analysis: {ai_signal.reason}")
        return "; ".join(reasons) if reasons else "Default classification"

    async def _resolve_text(self, document: DocumentDescriptor | str, text: str | None) -> str:
        if text is not None:
            return text
        if isinstance(document, str):
            return document
        if document.media_type.startswith("text/"):
            data = await asyncio.to_thread(self._file_loader.read, document)
            return data.decode("utf-8", errors="replace")
        return ""

    async def _request_ai_signal(
        self,
        document: DocumentDescriptor | str,
        language: str,
    ) -> AIClassification:
        if self._analyst is None:
            return AIClassification(category=OTHER_CATEGORY, confidence=0.0, reason="")
        try:
            if isinstance(document, str):
                content = DocumentContent.from_text("inline.txt", document)
            else:
                data = await asyncio.to_thread(self._file_loader.read, document)
                content = DocumentContent(
                    name=document.name,
                    media_type=document.media_type,
                    data=data,
                )
            return await self._analyst.classify(
                content,
                language,
                categories=self.category_names(),
                category_mapper=self._mapper,
            )
        except IntelligenceConfigurationError:
            raise
        except IntelligenceError as exc:
            Log.warning(f"AI classification failed: {exc}")
            return AIClassification(
                category=OTHER_CATEGORY,
                confidence=LOW_AI_CONFIDENCE,
                reason="AI analysis failed",
                error=str(exc),
            )
