"""Category table used by the hybrid classifier.

Table order matters: when two categories reach the same combined score the
one listed first wins.
"""

import re
from dataclasses import dataclass, field

OTHER_CATEGORY = "other"


@dataclass(frozen=True)
class CategoryDefinition:
    key: str
    english: str
    tamil: str
    keywords: tuple[str, ...] = ()
    patterns: tuple[re.Pattern[str], ...] = field(default=(), compare=False)
    aliases: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        key: str,
        english: str,
        tamil: str,
        *,
        keywords: tuple[str, ...] | list[str] = (),
        patterns: tuple[str, ...] | list[str] = (),
        aliases: tuple[str, ...] | list[str] = (),
    ) -> "CategoryDefinition":
        """Create a definition, compiling ``patterns`` case-insensitively."""
        return cls(
            key=key,
            english=english,
            tamil=tamil,
            keywords=tuple(keyword.lower() for keyword in keywords),
            patterns=tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns),
            aliases=tuple(aliases),
        )

    @property
    def labels(self) -> dict[str, str]:
        return {"english": self.english, "tamil": self.tamil}


DEFAULT_CATEGORIES: tuple[CategoryDefinition, ...] = (
    CategoryDefinition.build(
        "bill",
        "Bill",
        "பில்",
        keywords=["bill", "billing", "charges", "amount due", "payment",
                  "பில்", "கட்டணம்", "செலுத்த வேண்டிய தொகை"],
        patterns=[r"bill\s*no", r"invoice\s*no", r"amount\s*due", r"total\s*amount"],
    ),
    CategoryDefinition.build(
        "invoice",
        "Invoice",
        "விலைப்பட்டியல்",
        keywords=["invoice", "tax invoice", "gst", "cgst", "sgst", "igst",
                  "விலைப்பட்டியல்", "வரி", "ஜிஎஸ்டி"],
        patterns=[r"invoice", r"tax\s*invoice", r"gst", r"cgst", r"sgst", r"igst"],
        aliases=["tax invoice"],
    ),
    CategoryDefinition.build(
        "delivery_challan",
        "Delivery Challan",
        "டெலிவரி சலான்",
        keywords=["delivery challan", "challan", "dc", "delivery note",
                  "டெலிவரி", "சலான்", "டிசி"],
        patterns=[r"delivery\s*challan", r"challan", r"\bdc\b", r"delivery\s*note"],
        aliases=["challan", "delivery note"],
    ),
    CategoryDefinition.build(
        "report",
        "Report",
        "அறிக்கை",
        keywords=["report", "analysis", "summary", "findings", "conclusion",
                  "அறிக்கை", "பகுப்பாய்வு", "சுருக்கம்"],
        patterns=[r"report", r"analysis", r"summary", r"findings", r"conclusion"],
    ),
    CategoryDefinition.build(
        "scanned_copy",
        "Scanned Copy",
        "ஸ்கேன் நகல்",
        keywords=["scanned", "copy", "scan", "photocopy", "ஸ்கேன்", "நகல்", "போட்டோகாப்பி"],
        patterns=[r"scanned", r"scan", r"copy", r"photocopy"],
        aliases=["scan", "photocopy"],
    ),
    CategoryDefinition.build(
        "letter",
        "Letter",
        "கடிதம்",
        keywords=["letter", "correspondence", "communication", "memo",
                  "கடிதம்", "கடிதப் பரிமாற்றம்"],
        patterns=[r"dear\s+sir", r"yours\s+sincerely", r"yours\s+faithfully", r"letter"],
    ),
    CategoryDefinition.build(
        "contract",
        "Contract",
        "ஒப்பந்தம்",
        keywords=["contract", "agreement", "terms", "conditions",
                  "ஒப்பந்தம்", "உடன்படிக்கை", "நிபந்தனைகள்"],
        patterns=[r"contract", r"agreement", r"terms\s+and\s+conditions", r"whereas"],
        aliases=["agreement"],
    ),
    CategoryDefinition.build(
        "certificate",
        "Certificate",
        "சான்றிதழ்",
        keywords=["certificate", "certification", "certified",
                  "சான்றிதழ்", "சான்று", "சான்றளிக்கப்பட்ட"],
        patterns=[r"certificate", r"certification", r"certified", r"this\s+is\s+to\s+certify"],
    ),
    CategoryDefinition.build(
        "receipt",
        "Receipt",
        "ரசீது",
        keywords=["receipt", "received", "payment received",
                  "ரசீது", "பெறப்பட்டது", "பணம் பெறப்பட்டது"],
        patterns=[r"receipt", r"received", r"payment\s+received", r"acknowledgment"],
    ),
    CategoryDefinition.build(OTHER_CATEGORY, "Other", "பிற"),
)


def category_aliases(categories: tuple[CategoryDefinition, ...]) -> dict[str, str]:
    """Map every accepted AI label (key, English, Tamil, aliases) to a category key."""
    aliases: dict[str, str] = {}
    for category in categories:
        for label in (category.key, category.english, category.tamil, *category.aliases):
            aliases.setdefault(label, category.key)
    return aliases
