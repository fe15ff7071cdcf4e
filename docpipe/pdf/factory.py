from docpipe.config.settings import Settings
from docpipe.pdf.base import BasePdfExtractor
from docpipe.pdf.pdfplumber_adapter import PdfPlumberAdapter
from docpipe.pdf.pymupdf_adapter import PyMuPdfAdapter

_ENGINES: dict[str, type[BasePdfExtractor]] = {
    adapter.engine: adapter for adapter in (PdfPlumberAdapter, PyMuPdfAdapter)
}


class PdfExtractorFactory:
    @staticmethod
    def engines() -> list[str]:
        return sorted(_ENGINES)

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        """Build the extractor named by ``pdf_engine``; ``pdf_max_pages=0`` reads every page."""
        adapter_cls = _ENGINES.get(settings.pdf_engine.lower())
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{settings.pdf_engine}'. Choose from: {cls.engines()}"
            )
        return adapter_cls(max_pages=settings.pdf_max_pages or None)
