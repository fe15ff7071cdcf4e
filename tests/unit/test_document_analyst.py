import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from docpipe.intelligence.analyst import DocumentAnalyst
from docpipe.intelligence.client_base import BaseIntelligenceClient
from docpipe.intelligence.exceptions import IntelligenceError, IntelligenceNetworkError
from docpipe.intelligence.models import DocumentContent
from docpipe.intelligence.response_parser import CategoryMapper


def _make_analyst(answer: str = "", side_effect: BaseException | None = None) -> DocumentAnalyst:
    client = MagicMock(spec=BaseIntelligenceClient)
    client.analyze = AsyncMock(return_value=answer, side_effect=side_effect)
    return DocumentAnalyst(client=client)


def _instruction(analyst: DocumentAnalyst) -> str:
    return analyst.client.analyze.call_args.kwargs["instruction"]


_TEXT = DocumentContent.from_text("invoice.txt", "TAX INVOICE")
_IMAGE = DocumentContent(name="scan.png", media_type="image/png", data=b"\x89PNG")


class TestTaskCalls:
    @pytest.mark.asyncio
    async def test_summarize_returns_text(self) -> None:
        analyst = _make_analyst("```\nA short summary\n```")
        assert await analyst.summarize(_TEXT, "english") == "A short summary"
        kwargs = analyst.client.analyze.call_args.kwargs
        assert kwargs["content"] is _TEXT
        assert kwargs["language"] == "english"
        assert _instruction(analyst).startswith("Provide a detailed summary")

    @pytest.mark.asyncio
    async def test_suggest_name_uses_document_template(self) -> None:
        analyst = _make_analyst("GST Invoice 118")
        assert await analyst.suggest_name(_TEXT, "english") == "GST Invoice 118"
        assert _instruction(analyst).startswith("Based on the content of this document")

    @pytest.mark.asyncio
    async def test_suggest_name_uses_image_template(self) -> None:
        analyst = _make_analyst("Shop Receipt")
        await analyst.suggest_name(_IMAGE, "english")
        assert _instruction(analyst).startswith("Analyze the content in this image")

    @pytest.mark.asyncio
    async def test_extract_data_parses_json(self) -> None:
        analyst = _make_analyst('{"date": "2024-03-01", "amount": "11800"}')
        assert await analyst.extract_data(_TEXT, "english") == {
            "date": "2024-03-01",
            "amount": "11800",
        }

    @pytest.mark.asyncio
    async def test_ocr_and_importance(self) -> None:
        analyst = _make_analyst("Importance: 8")
        assert await analyst.ocr(_IMAGE, "tamil") == "Importance: 8"
        assert _instruction(analyst).startswith("Extract all text")
        assert await analyst.assess_importance(_TEXT, "english") == "Importance: 8"
        assert _instruction(analyst).startswith("Rate the importance")

    @pytest.mark.asyncio
    async def test_classify_lists_categories(self) -> None:
        analyst = _make_analyst('{"category": "Invoice", "confidence": 80}')
        result = await analyst.classify(
            _TEXT,
            "english",
            categories=["Invoice", "Bill"],
            category_mapper=CategoryMapper({"invoice": "invoice", "bill": "bill"}),
        )
        assert result.category == "invoice"
        assert result.confidence == pytest.approx(0.8)
        assert "- Invoice\n- Bill" in _instruction(analyst)

    @pytest.mark.asyncio
    async def test_client_errors_propagate(self) -> None:
        analyst = _make_analyst(side_effect=IntelligenceNetworkError("down"))
        with pytest.raises(IntelligenceNetworkError):
            await analyst.summarize(_TEXT, "english")

    def test_raises_when_prompt_missing(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        with pytest.raises(IntelligenceError, match="Failed to load prompt template"):
            DocumentAnalyst(client=MagicMock(spec=BaseIntelligenceClient), prompt_dir=tmp_path)


class TestCollectiveInsight:
    @pytest.mark.asyncio
    async def test_formats_summaries_and_classifications(self) -> None:
        analyst = _make_analyst(json.dumps({"overview": "Two invoices", "patterns": ["GST"]}))

        insight = await analyst.collective_insight(
            summaries=["first", "second"],
            classifications=["invoice", "invoice"],
            language="english",
        )

        assert insight.available is True
        assert insight.document_count == 2
        assert insight.overview == "Two invoices"
        assert insight.generated_at
        instruction = _instruction(analyst)
        assert "2 processed documents" in instruction
        assert "1. first\n2. second" in instruction
        assert '["invoice", "invoice"]' in instruction

    @pytest.mark.asyncio
    async def test_client_failure_degrades(self) -> None:
        analyst = _make_analyst(side_effect=IntelligenceNetworkError("timeout"))

        insight = await analyst.collective_insight(
            summaries=["a", "b"], classifications=["bill", "bill"], language="english"
        )

        assert insight.available is False
        assert insight.error == "timeout"
        assert insight.overview == "Insights unavailable"
