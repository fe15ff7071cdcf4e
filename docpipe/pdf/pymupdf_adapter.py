import pymupdf

from docpipe.pdf.base import BasePdfExtractor


class PyMuPdfAdapter(BasePdfExtractor):
    engine = "pymupdf"

    def _read_pages(self, pdf_bytes: bytes, limit: int | None) -> tuple[list[str], int]:
        with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
            page_count = doc.page_count
            last = page_count if limit is None else min(limit, page_count)
            return [doc[index].get_text() for index in range(last)], page_count
