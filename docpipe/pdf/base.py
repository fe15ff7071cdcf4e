from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from docpipe.pdf.exceptions import PdfExtractionError


@dataclass(frozen=True)
class PdfText:
    text: str
    page_count: int
    pages_read: int

    @property
    def truncated(self) -> bool:
        return self.pages_read < self.page_count


class BasePdfExtractor(ABC):
    """Contract for PDF text extraction adapters.

    Subclasses read page texts; joining, the page limit and error wrapping
    live here.
    """

    engine: ClassVar[str]

    def __init__(self, max_pages: int | None = None) -> None:
        self._max_pages = max_pages

    def extract(self, pdf_bytes: bytes) -> PdfText:
        """Extract plain text from PDF bytes.

        Returns:
            Page texts joined by newlines and stripped; empty for image-only PDFs.

        Raises:
            PdfExtractionError: if the bytes cannot be read as a PDF.
        """
        try:
            texts, page_count = self._read_pages(pdf_bytes, self._max_pages)
        except Exception as exc:
            raise PdfExtractionError(f"{self.engine} extraction failed: {exc}") from exc
        return PdfText(
            text="\n".join(texts).strip(),
            page_count=page_count,
            pages_read=len(texts),
        )

    @abstractmethod
    def _read_pages(self, pdf_bytes: bytes, limit: int | None) -> tuple[list[str], int]:
        """Return the texts of the first ``limit`` pages and the total page count."""
