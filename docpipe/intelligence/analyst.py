"""Task-level access to the document intelligence client."""

import json
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path

from docpipe.intelligence.client_base import BaseIntelligenceClient
from docpipe.intelligence.exceptions import IntelligenceError
from docpipe.intelligence.models import AIClassification, CollectiveInsight, DocumentContent
from docpipe.intelligence.prompt_loader import load_prompt_template
from docpipe.intelligence.response_parser import (
    parse_ai_classification,
    parse_collective_insight,
    parse_structured_data,
    parse_suggested_name,
    parse_text,
)
from docpipe.logging.logger import Log

_TASKS = (
    "summary",
    "naming_document",
    "naming_image",
    "extraction",
    "ocr",
    "importance",
    "classification",
    "collective_insight",
)


class DocumentAnalyst:
    """Builds one instruction per task, calls the client and parses the answer.

    Client errors propagate to the caller; malformed answers do not raise and
    are turned into empty or low-confidence values instead.
    """

    def __init__(
        self,
        *,
        client: BaseIntelligenceClient,
        prompt_dir: Path | None = None,
    ) -> None:
        self._client = client
        self._templates = {task: load_prompt_template(task, prompt_dir) for task in _TASKS}

    @property
    def client(self) -> BaseIntelligenceClient:
        return self._client

    async def summarize(self, content: DocumentContent, language: str) -> str | None:
        raw = await self._ask(content, self._templates["summary"], language)
        return parse_text(raw)

    async def suggest_name(self, content: DocumentContent, language: str) -> str | None:
        task = "naming_image" if content.is_image else "naming_document"
        raw = await self._ask(content, self._templates[task], language)
        return parse_suggested_name(raw)

    async def extract_data(self, content: DocumentContent, language: str) -> dict[str, object]:
        raw = await self._ask(content, self._templates["extraction"], language)
        return parse_structured_data(raw)

    async def ocr(self, content: DocumentContent, language: str) -> str | None:
        raw = await self._ask(content, self._templates["ocr"], language)
        return parse_text(raw)

    async def assess_importance(self, content: DocumentContent, language: str) -> str | None:
        raw = await self._ask(content, self._templates["importance"], language)
        return parse_text(raw)

    async def classify(
        self,
        content: DocumentContent,
        language: str,
        *,
        categories: Sequence[str],
        category_mapper: Callable[[str | None], str],
    ) -> AIClassification:
        instruction = self._templates["classification"].format(
            categories="\n".join(f"- {name}" for name in categories),
        )
        raw = await self._ask(content, instruction, language)
        return parse_ai_classification(raw, category_mapper)

    async def collective_insight(
        self,
        *,
        summaries: Sequence[str],
        classifications: Sequence[str],
        language: str,
    ) -> CollectiveInsight:
        """Summarize patterns across several processed documents.

        Never raises for client failures: they degrade to an unavailable insight.
        """
        document_count = len(summaries)
        generated_at = datetime.now(timezone.utc).isoformat()
        instruction = self._templates["collective_insight"].format(
            document_count=document_count,
            summaries="\n".join(
                f"{index}. {summary}" for index, summary in enumerate(summaries, start=1)
            ),
            classifications=json.dumps(list(classifications), ensure_ascii=False),
        )
        content = DocumentContent.from_text("collection.txt", "")
        try:
            raw = await self._client.analyze(
                content=content,
                instruction=instruction,
                language=language,
            )
        except IntelligenceError as exc:
            Log.warning(f"Collective insight unavailable: {exc}")
            return CollectiveInsight.unavailable(document_count, str(exc), generated_at)
        return parse_collective_insight(raw, document_count, generated_at)

    async def _ask(self, content: DocumentContent, instruction: str, language: str) -> str:
        Log.debug(f"Intelligence call for '{content.name}': {instruction.splitlines()[0]}")
        return await self._client.analyze(
            content=content,
            instruction=instruction,
            language=language,
        )
