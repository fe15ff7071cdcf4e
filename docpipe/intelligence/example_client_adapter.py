"""Example document intelligence adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseIntelligenceClient and register the provider in IntelligenceClientFactory.
"""

import json
from typing import ClassVar

from docpipe.intelligence.client_base import BaseIntelligenceClient
from docpipe.intelligence.models import DocumentContent


class ExampleClientAdapter(BaseIntelligenceClient):
    """Offline adapter returning deterministic answers for each instruction.

    No network calls. The task is recognised from phrases of the bundled
    prompt templates; classification looks for category words in text content.
    """

    CATEGORY_WORDS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("tax invoice", "invoice"),
        ("invoice", "invoice"),
        ("delivery challan", "delivery challan"),
        ("receipt", "receipt"),
        ("certificate", "certificate"),
        ("agreement", "contract"),
        ("contract", "contract"),
        ("dear sir", "letter"),
        ("report", "report"),
        ("bill", "bill"),
    )

    DEFAULT_EXTRACTED_DATA: ClassVar[dict[str, object]] = {
        "date": None,
        "amount": None,
        "company": None,
        "address": None,
        "phone": None,
        "email": None,
        "reference_number": None,
    }

    async def analyze(
        self,
        *,
        content: DocumentContent,
        instruction: str,
        language: str,
    ) -> str:
        _ = language
        lowered = instruction.lower()
        if "classify this document" in lowered:
            return self._classify(content)
        if "collective insights" in lowered:
            return json.dumps({
                "overview": "Example overview of the document collection",
                "patterns": ["Documents share a common source"],
                "recommendations": ["Group documents by category"],
                "summary": "Example collective summary",
                "organizationSuggestions": {"folderStructure": {}, "namingConventions": []},
            })
        if "json format" in lowered:
            return json.dumps(self.DEFAULT_EXTRACTED_DATA)
        if "file name" in lowered:
            stem = content.name.rsplit(".", 1)[0]
            return stem.replace("_", " ").replace("-", " ").strip() or "document"
        if "extract all text" in lowered:
            return f"Example OCR text for {content.name}"
        if "importance" in lowered:
            return "Importance: 5\nReason: example analysis"
        return f"Example summary of {content.name}: the document describes its main purpose."

    def _classify(self, content: DocumentContent) -> str:
        text = "" if content.is_image or content.is_pdf else content.text().lower()
        for word, category in self.CATEGORY_WORDS:
            if word in text:
                return json.dumps({
                    "category": category,
                    "confidence": 90,
                    "reason": f"found '{word}' in the document",
                })
        return json.dumps({"category": "other", "confidence": 50, "reason": "no category words"})
