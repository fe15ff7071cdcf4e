import asyncio
import dataclasses
import json
from datetime import datetime, timezone

from docpipe.classification.categories import DEFAULT_CATEGORIES, OTHER_CATEGORY
from docpipe.classification.classifier import HybridClassifier
from docpipe.classification.models import ClassificationResult, ClassifyOptions
from docpipe.documents.exceptions import DocumentReadError
from docpipe.documents.file_loader import FileLoader
from docpipe.documents.media_types import file_category, is_supported
from docpipe.documents.models import FileInfo
from docpipe.documents.office import (
    DOCX_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    extract_docx_text,
    extract_xlsx_text,
)
from docpipe.intelligence.analyst import DocumentAnalyst
from docpipe.intelligence.exceptions import IntelligenceConfigurationError, IntelligenceError
from docpipe.intelligence.models import DocumentContent, ProcessingAnalysis
from docpipe.logging.logger import Log
from docpipe.pipeline.exceptions import (
    AIProcessingError,
    ClassificationError,
    ExtractionError,
    FormattingError,
    ValidationError,
)
from docpipe.pipeline.models import (
    CLASSIFICATION,
    EXTRACTION,
    FORMATTING,
    OUTPUT,
    PROCESSING,
    VALIDATION,
    ExtractionPayload,
    FormattedResult,
    PipelineInfo,
    PipelineOutput,
    ProcessingContext,
    ValidationPayload,
)
from docpipe.pipeline.pipeline import PipelineStage
from docpipe.pipeline.quality import quality_score

AI_PENDING = "ai_pending"
COMPACT_SUMMARY_CHARS = 200
_TIMED_STAGES = (VALIDATION, EXTRACTION, PROCESSING, CLASSIFICATION)
_OFFICE_EXTRACTORS = {
    DOCX_MEDIA_TYPE: ("docx", extract_docx_text),
    XLSX_MEDIA_TYPE: ("xlsx", extract_xlsx_text),
}


class ValidationStage(PipelineStage):
    name = VALIDATION

    def __init__(self, max_file_size_bytes: int) -> None:
        self._max_file_size_bytes = max_file_size_bytes

    async def run(self, context: ProcessingContext) -> ValidationPayload:
        document = context.document
        if document.size <= 0:
            raise ValidationError(f"File '{document.name}' is empty", VALIDATION)
        if document.size > self._max_file_size_bytes:
            raise ValidationError(
                f"File '{document.name}' is {document.size} bytes, "
                f"above the {self._max_file_size_bytes} byte limit",
                VALIDATION,
            )
        if not is_supported(document.media_type):
            raise ValidationError(
                f"Unsupported media type '{document.media_type}' for '{document.name}'",
                VALIDATION,
            )
        return ValidationPayload(
            file=FileInfo.of(document),
            file_category=file_category(document.media_type),
        )


class ExtractionStage(PipelineStage):
    """Local text extraction; images and PDFs are left to the AI.

    DOCX and XLSX files are reduced to plain text here.
    """

    name = EXTRACTION

    def __init__(self, file_loader: FileLoader) -> None:
        self._file_loader = file_loader

    async def run(self, context: ProcessingContext) -> ExtractionPayload:
        document = context.document
        try:
            context.raw_bytes = await asyncio.to_thread(self._file_loader.read, document)
        except DocumentReadError as exc:
            raise ExtractionError(str(exc), EXTRACTION) from exc

        media_type = document.media_type
        if media_type.startswith("image/"):
            return ExtractionPayload(text="", method=AI_PENDING, metadata={"is_image": True})
        if media_type == "application/pdf":
            return ExtractionPayload(text="", method=AI_PENDING, metadata={"is_pdf": True})
        if media_type in ("text/plain", "text/csv"):
            text = context.raw_bytes.decode("utf-8", errors="replace")
            return ExtractionPayload(text=text, method="text", metadata={"length": len(text)})
        if media_type == "application/json":
            return self._extract_json(context.raw_bytes, document.name)
        if media_type in _OFFICE_EXTRACTORS:
            method, extract = _OFFICE_EXTRACTORS[media_type]
            try:
                text = await asyncio.to_thread(extract, context.raw_bytes)
            except DocumentReadError as exc:
                raise ExtractionError(f"Cannot read '{document.name}': {exc}", EXTRACTION) from exc
            return ExtractionPayload(text=text, method=method, metadata={"length": len(text)})
        raise ExtractionError(
            f"No text extractor for media type '{media_type}' of '{document.name}'", EXTRACTION
        )

    @staticmethod
    def _extract_json(raw_bytes: bytes, name: str) -> ExtractionPayload:
        try:
            text = raw_bytes.decode("utf-8")
            parsed = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ExtractionError(f"Invalid JSON in '{name}': {exc}", EXTRACTION) from exc
        return ExtractionPayload(
            text=text,
            method="json",
            metadata={"length": len(text), "json_type": type(parsed).__name__},
        )


class ProcessingStage(PipelineStage):
    """Issues the document intelligence calls, one after another.

    Any client failure aborts the stage; nothing partial is kept.
    """

    name = PROCESSING

    def __init__(self, analyst: DocumentAnalyst, classifier: HybridClassifier) -> None:
        self._analyst = analyst
        self._classifier = classifier

    async def run(self, context: ProcessingContext) -> ProcessingAnalysis:
        extraction = context.payload(EXTRACTION, ExtractionPayload)
        if extraction is None:
            raise AIProcessingError("Extraction result is missing", PROCESSING)
        content = self._content(context, extraction)
        options = context.options
        language = options.language

        try:
            summary = (
                await self._analyst.summarize(content, language)
                if options.enable_summary else None
            )
            suggested_name = (
                await self._analyst.suggest_name(content, language)
                if options.enable_naming else None
            )
            extracted_data = (
                await self._analyst.extract_data(content, language)
                if options.enable_data_extraction else None
            )
            ocr_text = (
                await self._analyst.ocr(content, language)
                if options.enable_ocr and content.is_image else None
            )
            analysis = await self._analyst.assess_importance(content, language)
            ai_classification = (
                await self._analyst.classify(
                    content,
                    language,
                    categories=self._classifier.category_names(),
                    category_mapper=self._classifier.category_mapper,
                )
                if self._needs_ai_classification(context) else None
            )
        except IntelligenceConfigurationError:
            raise
        except IntelligenceError as exc:
            raise AIProcessingError(f"AI processing failed: {exc}", PROCESSING) from exc

        if ai_classification is not None and ai_classification.error:
            context.warnings.append(f"AI classification unreadable: {ai_classification.error}")
        Log.debug(f"[{context.processing_id}] AI processing produced summary={summary is not None}")
        return ProcessingAnalysis(
            summary=summary,
            suggested_name=suggested_name,
            extracted_data=extracted_data,
            ocr_text=ocr_text,
            analysis=analysis,
            ai_classification=ai_classification,
        )

    def _needs_ai_classification(self, context: ProcessingContext) -> bool:
        """Skip the model call when classification will be answered from the cache."""
        options = context.options
        if not options.enable_classification:
            return False
        return options.force_refresh or not self._classifier.is_cached(context.document)

    @staticmethod
    def _content(context: ProcessingContext, extraction: ExtractionPayload) -> DocumentContent:
        document = context.document
        if extraction.method != AI_PENDING:
            return DocumentContent(
                name=document.name,
                media_type="text/plain",
                data=extraction.text.encode("utf-8"),
            )
        return DocumentContent(
            name=document.name,
            media_type=document.media_type,
            data=context.raw_bytes,
        )


class ClassificationStage(PipelineStage):
    name = CLASSIFICATION

    DISABLED_CONFIDENCE = 0.5

    def __init__(self, classifier: HybridClassifier) -> None:
        self._classifier = classifier

    async def run(self, context: ProcessingContext) -> ClassificationResult:
        options = context.options
        if not options.enable_classification:
            other = next(c for c in DEFAULT_CATEGORIES if c.key == OTHER_CATEGORY)
            return ClassificationResult(
                category=OTHER_CATEGORY,
                confidence=self.DISABLED_CONFIDENCE,
                reason="Classification disabled",
                labels=other.labels,
                language=options.language,
            )

        extraction = context.payload(EXTRACTION, ExtractionPayload)
        analysis = context.payload(PROCESSING, ProcessingAnalysis)
        if extraction is None or analysis is None:
            raise ClassificationError(
                "Classification needs extraction and processing results", CLASSIFICATION
            )
        text = extraction.text or analysis.ocr_text or ""
        result = await self._classifier.classify(
            context.document,
            options.language,
            ClassifyOptions(
                force_refresh=options.force_refresh,
                ai_signal=analysis.ai_classification,
            ),
            text=text,
        )
        if result.error:
            context.warnings.append(result.reason)
        return result


class FormattingStage(PipelineStage):
    name = FORMATTING

    async def run(self, context: ProcessingContext) -> FormattedResult:
        validation = context.payload(VALIDATION, ValidationPayload)
        extraction = context.payload(EXTRACTION, ExtractionPayload)
        analysis = context.payload(PROCESSING, ProcessingAnalysis)
        classification = context.payload(CLASSIFICATION, ClassificationResult)
        missing = [
            stage
            for stage, payload in (
                (VALIDATION, validation),
                (EXTRACTION, extraction),
                (PROCESSING, analysis),
                (CLASSIFICATION, classification),
            )
            if payload is None
        ]
        if missing:
            raise FormattingError(f"Missing stage output: {', '.join(missing)}", FORMATTING)

        return FormattedResult(
            file=validation.file,
            file_category=validation.file_category,
            classification=classification,
            analysis=analysis,
            extraction_metadata={"method": extraction.method, **extraction.metadata},
            language=context.options.language,
            enabled_features=context.options.enabled_features(),
            performance={
                stage: context.stage_results[stage].duration_ms for stage in _TIMED_STAGES
            },
        )


class OutputStage(PipelineStage):
    name = OUTPUT

    def __init__(self, pipeline_version: str) -> None:
        self._pipeline_version = pipeline_version

    async def run(self, context: ProcessingContext) -> PipelineOutput:
        formatted = context.payload(FORMATTING, FormattedResult)
        if formatted is None:
            raise FormattingError("Formatting result is missing", OUTPUT)

        generated_at = datetime.now(timezone.utc).isoformat()
        stages = (*context.stage_results, self.name)
        return PipelineOutput(
            format=context.options.output_format,
            generated_at=generated_at,
            quality_score=quality_score(formatted),
            pipeline=PipelineInfo(
                version=self._pipeline_version,
                stages=stages,
                total_duration_ms=sum(r.duration_ms for r in context.stage_results.values()),
            ),
            document=self._view(formatted, context.options.output_format, generated_at),
            formatted=formatted,
        )

    def _view(
        self,
        formatted: FormattedResult,
        output_format: str,
        generated_at: str,
    ) -> dict[str, object]:
        if output_format == "compact":
            summary = formatted.analysis.summary
            return {
                "file": formatted.file.name,
                "type": formatted.classification.category,
                "confidence": formatted.classification.confidence,
                "summary": f"{summary[:COMPACT_SUMMARY_CHARS]}..." if summary else None,
                "processing_time_ms": formatted.performance[PROCESSING],
            }
        view = dataclasses.asdict(formatted)
        if output_format == "detailed":
            view["additional_metadata"] = {
                "pipeline_version": self._pipeline_version,
                "processing_timestamp": generated_at,
            }
        return view
