import io

import pdfplumber

from docpipe.pdf.base import BasePdfExtractor


class PdfPlumberAdapter(BasePdfExtractor):
    engine = "pdfplumber"

    def _read_pages(self, pdf_bytes: bytes, limit: int | None) -> tuple[list[str], int]:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            pages = pdf.pages if limit is None else pdf.pages[:limit]
            return [page.extract_text() or "" for page in pages], len(pdf.pages)
