from unittest.mock import AsyncMock, MagicMock

import pytest

from docpipe.classification.cache import ClassificationCache, document_fingerprint
from docpipe.classification.classifier import HybridClassifier
from docpipe.classification.models import ClassificationResult, ClassifyOptions
from docpipe.documents.file_loader import FileLoader
from docpipe.documents.models import DocumentDescriptor, FileInfo
from docpipe.documents.office import DOCX_MEDIA_TYPE, XLSX_MEDIA_TYPE
from docpipe.intelligence.analyst import DocumentAnalyst
from docpipe.intelligence.exceptions import (
    IntelligenceConfigurationError,
    IntelligenceNetworkError,
)
from docpipe.intelligence.models import AIClassification, ProcessingAnalysis
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
    PROCESSING,
    VALIDATION,
    ExtractionPayload,
    FormattedResult,
    ProcessingContext,
    ProcessingOptions,
    StageResult,
    ValidationPayload,
)
from docpipe.pipeline.stages import (
    AI_PENDING,
    ClassificationStage,
    ExtractionStage,
    FormattingStage,
    OutputStage,
    ProcessingStage,
    ValidationStage,
)

_AI_SIGNAL = AIClassification(category="invoice", confidence=0.9, reason="GST lines")


def _make_document(
    name: str = "note.txt",
    data: bytes = b"hello",
    media_type: str = "text/plain",
) -> DocumentDescriptor:
    return DocumentDescriptor.from_bytes(name, data, media_type, last_modified=1.0)


def _make_context(
    document: DocumentDescriptor | None = None,
    options: ProcessingOptions | None = None,
    **payloads: object,
) -> ProcessingContext:
    context = ProcessingContext(
        processing_id="pipeline_test",
        document=document or _make_document(),
        options=options or ProcessingOptions(),
    )
    for stage, payload in payloads.items():
        context.stage_results[stage] = StageResult(
            stage=stage, success=True, duration_ms=10.0, payload=payload
        )
    return context


def _make_analyst() -> MagicMock:
    analyst = MagicMock(spec=DocumentAnalyst)
    analyst.summarize = AsyncMock(return_value="A summary")
    analyst.suggest_name = AsyncMock(return_value="Suggested Name")
    analyst.extract_data = AsyncMock(return_value={"date": "2024-01-01"})
    analyst.ocr = AsyncMock(return_value="OCR text")
    analyst.assess_importance = AsyncMock(return_value="Importance: 7")
    analyst.classify = AsyncMock(return_value=_AI_SIGNAL)
    return analyst


def _make_classification(category: str = "invoice", confidence: float = 0.87) -> ClassificationResult:
    return ClassificationResult(category=category, confidence=confidence, reason="test")


def _make_formatted(summary: str | None = "x" * 300) -> FormattedResult:
    return FormattedResult(
        file=FileInfo(name="a.txt", size=5, media_type="text/plain", last_modified=1.0),
        file_category="text",
        classification=_make_classification(),
        analysis=ProcessingAnalysis(summary=summary, extracted_data={"a": 1}),
        extraction_metadata={"method": "text"},
        language="english",
        enabled_features=ProcessingOptions().enabled_features(),
        performance={VALIDATION: 1.0, EXTRACTION: 2.0, PROCESSING: 300.0, CLASSIFICATION: 4.0},
    )


class TestValidationStage:
    @pytest.mark.asyncio
    async def test_accepts_supported_document(self) -> None:
        payload = await ValidationStage(100).run(_make_context())
        assert payload.file.name == "note.txt"
        assert payload.file_category == "text"

    @pytest.mark.asyncio
    async def test_rejects_empty_file(self) -> None:
        with pytest.raises(ValidationError, match="is empty") as exc_info:
            await ValidationStage(100).run(_make_context(_make_document(data=b"")))
        assert exc_info.value.stage == VALIDATION

    @pytest.mark.asyncio
    async def test_rejects_oversized_file(self) -> None:
        with pytest.raises(ValidationError, match="above the 4 byte limit"):
            await ValidationStage(4).run(_make_context())

    @pytest.mark.asyncio
    async def test_accepts_file_at_size_limit(self) -> None:
        payload = await ValidationStage(5).run(_make_context())
        assert payload.file.size == 5

    @pytest.mark.asyncio
    async def test_rejects_unsupported_type(self) -> None:
        document = _make_document("a.zip", b"PK", "application/zip")
        with pytest.raises(ValidationError, match="Unsupported media type"):
            await ValidationStage(100).run(_make_context(document))


class TestExtractionStage:
    @pytest.mark.asyncio
    async def test_plain_text(self) -> None:
        context = _make_context()
        payload = await ExtractionStage(FileLoader()).run(context)
        assert payload == ExtractionPayload(text="hello", method="text", metadata={"length": 5})
        assert context.raw_bytes == b"hello"

    @pytest.mark.asyncio
    async def test_json(self) -> None:
        document = _make_document("a.json", b'{"k": 1}', "application/json")
        payload = await ExtractionStage(FileLoader()).run(_make_context(document))
        assert payload.method == "json"
        assert payload.text == '{"k": 1}'
        assert payload.metadata["json_type"] == "dict"

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self) -> None:
        document = _make_document("a.json", b"{not json", "application/json")
        with pytest.raises(ExtractionError, match="Invalid JSON"):
            await ExtractionStage(FileLoader()).run(_make_context(document))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("media_type", "flag"),
        [("image/png", "is_image"), ("application/pdf", "is_pdf")],
    )
    async def test_images_and_pdfs_are_left_to_ai(self, media_type: str, flag: str) -> None:
        context = _make_context(_make_document("f", b"\x89binary", media_type))
        payload = await ExtractionStage(FileLoader()).run(context)
        assert payload.method == AI_PENDING
        assert payload.text == ""
        assert payload.metadata == {flag: True}
        assert context.raw_bytes == b"\x89binary"

    @pytest.mark.asyncio
    async def test_docx_is_reduced_to_text(self, sample_docx_bytes: bytes) -> None:
        document = _make_document("invoice.docx", sample_docx_bytes, DOCX_MEDIA_TYPE)
        payload = await ExtractionStage(FileLoader()).run(_make_context(document))
        assert payload.method == "docx"
        assert payload.text == "Tax Invoice No 42\nTotal\t11,800"

    @pytest.mark.asyncio
    async def test_xlsx_is_reduced_to_text(self, sample_xlsx_bytes: bytes) -> None:
        document = _make_document("ledger.xlsx", sample_xlsx_bytes, XLSX_MEDIA_TYPE)
        payload = await ExtractionStage(FileLoader()).run(_make_context(document))
        assert payload.method == "xlsx"
        assert payload.text.startswith("[Sheet: Invoices]\n")
        assert payload.metadata == {"length": len(payload.text)}

    @pytest.mark.asyncio
    async def test_corrupt_office_file_raises(self) -> None:
        document = _make_document("broken.xlsx", b"\xd0\xcf\x11\xe0\xff", XLSX_MEDIA_TYPE)
        with pytest.raises(ExtractionError, match="Cannot read 'broken.xlsx'"):
            await ExtractionStage(FileLoader()).run(_make_context(document))

    @pytest.mark.asyncio
    async def test_type_without_extractor_raises(self) -> None:
        document = _make_document("a.doc", b"\xd0\xcf\x11\xe0\xff", "application/msword")
        with pytest.raises(ExtractionError, match="No text extractor"):
            await ExtractionStage(FileLoader()).run(_make_context(document))

    @pytest.mark.asyncio
    async def test_unreadable_document_raises(self) -> None:
        document = DocumentDescriptor(name="x.txt", size=3, media_type="text/plain", last_modified=0.0)
        with pytest.raises(ExtractionError, match="no content handle"):
            await ExtractionStage(FileLoader()).run(_make_context(document))


class TestProcessingStage:
    @pytest.mark.asyncio
    async def test_runs_enabled_calls_on_extracted_text(self) -> None:
        analyst = _make_analyst()
        context = _make_context(
            **{EXTRACTION: ExtractionPayload(text="TAX INVOICE", method="text")}
        )

        analysis = await ProcessingStage(analyst, HybridClassifier()).run(context)

        assert analysis == ProcessingAnalysis(
            summary="A summary",
            suggested_name="Suggested Name",
            extracted_data={"date": "2024-01-01"},
            ocr_text=None,
            analysis="Importance: 7",
            ai_classification=_AI_SIGNAL,
        )
        content = analyst.summarize.call_args.args[0]
        assert content.media_type == "text/plain"
        assert content.text() == "TAX INVOICE"
        analyst.ocr.assert_not_called()

    @pytest.mark.asyncio
    async def test_office_text_is_sent_instead_of_archive_bytes(self) -> None:
        analyst = _make_analyst()
        context = _make_context(
            _make_document("ledger.xlsx", b"PK\x03\x04", XLSX_MEDIA_TYPE),
            **{EXTRACTION: ExtractionPayload(text="[Sheet: Invoices]", method="xlsx")},
        )
        context.raw_bytes = b"PK\x03\x04"

        await ProcessingStage(analyst, HybridClassifier()).run(context)

        content = analyst.summarize.call_args.args[0]
        assert content.media_type == "text/plain"
        assert content.data == b"[Sheet: Invoices]"

    @pytest.mark.asyncio
    async def test_image_gets_ocr_with_original_bytes(self) -> None:
        analyst = _make_analyst()
        context = _make_context(
            _make_document("scan.png", b"\x89PNG", "image/png"),
            **{EXTRACTION: ExtractionPayload(text="", method=AI_PENDING)},
        )
        context.raw_bytes = b"\x89PNG"

        analysis = await ProcessingStage(analyst, HybridClassifier()).run(context)

        assert analysis.ocr_text == "OCR text"
        content = analyst.ocr.call_args.args[0]
        assert content.media_type == "image/png"
        assert content.data == b"\x89PNG"

    @pytest.mark.asyncio
    async def test_disabled_options_skip_calls(self) -> None:
        analyst = _make_analyst()
        options = ProcessingOptions(
            enable_summary=False,
            enable_naming=False,
            enable_data_extraction=False,
            enable_ocr=False,
            enable_classification=False,
        )
        context = _make_context(
            _make_document("scan.png", b"\x89PNG", "image/png"),
            options,
            **{EXTRACTION: ExtractionPayload(text="", method=AI_PENDING)},
        )

        analysis = await ProcessingStage(analyst, HybridClassifier()).run(context)

        assert analysis == ProcessingAnalysis(analysis="Importance: 7")
        for call in (analyst.summarize, analyst.suggest_name, analyst.extract_data,
                     analyst.ocr, analyst.classify):
            call.assert_not_called()

    @pytest.mark.asyncio
    async def test_client_failure_aborts_stage(self) -> None:
        analyst = _make_analyst()
        analyst.extract_data.side_effect = IntelligenceNetworkError("timeout")
        context = _make_context(**{EXTRACTION: ExtractionPayload(text="x", method="text")})

        with pytest.raises(AIProcessingError, match="AI processing failed: timeout"):
            await ProcessingStage(analyst, HybridClassifier()).run(context)
        analyst.assess_importance.assert_not_called()

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self) -> None:
        analyst = _make_analyst()
        analyst.summarize.side_effect = IntelligenceConfigurationError("no key")
        context = _make_context(**{EXTRACTION: ExtractionPayload(text="x", method="text")})

        with pytest.raises(IntelligenceConfigurationError):
            await ProcessingStage(analyst, HybridClassifier()).run(context)

    @pytest.mark.asyncio
    async def test_unreadable_classification_adds_warning(self) -> None:
        analyst = _make_analyst()
        analyst.classify.return_value = AIClassification(
            category="other", confidence=0.1, error="empty response"
        )
        context = _make_context(**{EXTRACTION: ExtractionPayload(text="x", method="text")})

        await ProcessingStage(analyst, HybridClassifier()).run(context)

        assert context.warnings == ["AI classification unreadable: empty response"]

    @pytest.mark.asyncio
    async def test_cached_classification_skips_ai_call(self) -> None:
        analyst = _make_analyst()
        document = _make_document()
        cache = ClassificationCache()
        cache.set(document_fingerprint(document), _make_classification())
        context = _make_context(
            document, **{EXTRACTION: ExtractionPayload(text="x", method="text")}
        )

        analysis = await ProcessingStage(analyst, HybridClassifier(cache=cache)).run(context)

        analyst.classify.assert_not_called()
        assert analysis.ai_classification is None
        analyst.summarize.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_force_refresh_calls_ai_despite_cache(self) -> None:
        analyst = _make_analyst()
        document = _make_document()
        cache = ClassificationCache()
        cache.set(document_fingerprint(document), _make_classification())
        context = _make_context(
            document,
            ProcessingOptions(force_refresh=True),
            **{EXTRACTION: ExtractionPayload(text="x", method="text")},
        )

        analysis = await ProcessingStage(analyst, HybridClassifier(cache=cache)).run(context)

        analyst.classify.assert_awaited_once()
        assert analysis.ai_classification == _AI_SIGNAL

    @pytest.mark.asyncio
    async def test_missing_extraction_raises(self) -> None:
        with pytest.raises(AIProcessingError, match="Extraction result is missing"):
            await ProcessingStage(_make_analyst(), HybridClassifier()).run(_make_context())


class TestClassificationStage:
    @pytest.mark.asyncio
    async def test_disabled_returns_other(self) -> None:
        context = _make_context(options=ProcessingOptions(enable_classification=False))
        result = await ClassificationStage(HybridClassifier()).run(context)
        assert result.category == "other"
        assert result.confidence == 0.5
        assert result.reason == "Classification disabled"

    @pytest.mark.asyncio
    async def test_missing_inputs_raise(self) -> None:
        with pytest.raises(ClassificationError):
            await ClassificationStage(HybridClassifier()).run(_make_context())

    @pytest.mark.asyncio
    async def test_passes_text_and_ai_signal(self) -> None:
        classifier = MagicMock(spec=HybridClassifier)
        classifier.classify = AsyncMock(return_value=_make_classification())
        context = _make_context(
            options=ProcessingOptions(force_refresh=True),
            **{
                EXTRACTION: ExtractionPayload(text="TAX INVOICE", method="text"),
                PROCESSING: ProcessingAnalysis(ai_classification=_AI_SIGNAL),
            },
        )

        result = await ClassificationStage(classifier).run(context)

        assert result.category == "invoice"
        args = classifier.classify.call_args
        assert args.args == (
            context.document,
            "english",
            ClassifyOptions(force_refresh=True, ai_signal=_AI_SIGNAL),
        )
        assert args.kwargs == {"text": "TAX INVOICE"}

    @pytest.mark.asyncio
    async def test_falls_back_to_ocr_text(self) -> None:
        classifier = MagicMock(spec=HybridClassifier)
        classifier.classify = AsyncMock(return_value=_make_classification())
        context = _make_context(
            **{
                EXTRACTION: ExtractionPayload(text="", method=AI_PENDING),
                PROCESSING: ProcessingAnalysis(ocr_text="Receipt 12"),
            },
        )

        await ClassificationStage(classifier).run(context)

        assert classifier.classify.call_args.kwargs == {"text": "Receipt 12"}

    @pytest.mark.asyncio
    async def test_degraded_result_adds_warning(self) -> None:
        classifier = MagicMock(spec=HybridClassifier)
        failed = ClassificationResult(
            category="other", confidence=0.1, reason="Classification failed: boom", error=True
        )
        classifier.classify = AsyncMock(return_value=failed)
        context = _make_context(
            **{
                EXTRACTION: ExtractionPayload(text="x", method="text"),
                PROCESSING: ProcessingAnalysis(),
            },
        )

        await ClassificationStage(classifier).run(context)

        assert context.warnings == ["Classification failed: boom"]


class TestFormattingStage:
    @pytest.mark.asyncio
    async def test_merges_payloads(self) -> None:
        validation = ValidationPayload(file=FileInfo.of(_make_document()), file_category="text")
        analysis = ProcessingAnalysis(summary="s")
        classification = _make_classification()
        context = _make_context(
            options=ProcessingOptions(language="tamil", enable_ocr=False),
            **{
                VALIDATION: validation,
                EXTRACTION: ExtractionPayload(text="x", method="text", metadata={"length": 1}),
                PROCESSING: analysis,
                CLASSIFICATION: classification,
            },
        )

        formatted = await FormattingStage().run(context)

        assert formatted.file == validation.file
        assert formatted.classification is classification
        assert formatted.analysis is analysis
        assert formatted.extraction_metadata == {"method": "text", "length": 1}
        assert formatted.language == "tamil"
        assert formatted.enabled_features["ocr"] is False
        assert formatted.performance == {
            VALIDATION: 10.0,
            EXTRACTION: 10.0,
            PROCESSING: 10.0,
            CLASSIFICATION: 10.0,
        }

    @pytest.mark.asyncio
    async def test_missing_payloads_raise(self) -> None:
        context = _make_context(**{EXTRACTION: ExtractionPayload(text="x", method="text")})
        with pytest.raises(FormattingError, match="validation, processing, classification"):
            await FormattingStage().run(context)


class TestOutputStage:
    @pytest.mark.asyncio
    async def test_structured_view(self) -> None:
        context = _make_context(**{FORMATTING: _make_formatted()})

        output = await OutputStage("1.2.3").run(context)

        assert output.format == "structured"
        assert output.pipeline.version == "1.2.3"
        assert output.pipeline.stages == (FORMATTING, "output")
        assert output.document["file"]["name"] == "a.txt"
        assert output.document["classification"]["category"] == "invoice"
        assert "additional_metadata" not in output.document
        assert 0.0 <= output.quality_score <= 1.0

    @pytest.mark.asyncio
    async def test_detailed_view_adds_metadata(self) -> None:
        context = _make_context(
            options=ProcessingOptions(output_format="detailed"),
            **{FORMATTING: _make_formatted()},
        )

        output = await OutputStage("1.0.0").run(context)

        metadata = output.document["additional_metadata"]
        assert metadata == {
            "pipeline_version": "1.0.0",
            "processing_timestamp": output.generated_at,
        }

    @pytest.mark.asyncio
    async def test_compact_view(self) -> None:
        context = _make_context(
            options=ProcessingOptions(output_format="compact"),
            **{FORMATTING: _make_formatted()},
        )

        output = await OutputStage("1.0.0").run(context)

        assert output.document == {
            "file": "a.txt",
            "type": "invoice",
            "confidence": 0.87,
            "summary": "x" * 200 + "...",
            "processing_time_ms": 300.0,
        }
        assert output.formatted.analysis.summary == "x" * 300

    @pytest.mark.asyncio
    async def test_compact_view_without_summary(self) -> None:
        context = _make_context(
            options=ProcessingOptions(output_format="compact"),
            **{FORMATTING: _make_formatted(summary=None)},
        )
        output = await OutputStage("1.0.0").run(context)
        assert output.document["summary"] is None

    @pytest.mark.asyncio
    async def test_missing_formatting_raises(self) -> None:
        with pytest.raises(FormattingError):
            await OutputStage("1.0.0").run(_make_context())


class TestProcessingOptions:
    def test_rejects_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="Unknown output format"):
            ProcessingOptions(output_format="xml")

    def test_enabled_features(self) -> None:
        features = ProcessingOptions(enable_naming=False).enabled_features()
        assert features == {
            "classification": True,
            "summary": True,
            "data_extraction": True,
            "ocr": True,
            "naming": False,
        }

    def test_payload_ignores_failed_and_mistyped_results(self) -> None:
        context = _make_context(**{EXTRACTION: ExtractionPayload(text="x", method="text")})
        context.stage_results[VALIDATION] = StageResult(
            stage=VALIDATION, success=False, duration_ms=1.0, error="bad"
        )
        assert context.payload(VALIDATION, ValidationPayload) is None
        assert context.payload(EXTRACTION, ValidationPayload) is None
        assert context.payload(EXTRACTION, ExtractionPayload) is not None
