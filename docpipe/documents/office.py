"""Text extraction for Office Open XML documents (DOCX, XLSX)."""

import io

import docx
import openpyxl

from docpipe.documents.exceptions import DocumentReadError

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def extract_docx_text(data: bytes) -> str:
    """Non-empty paragraphs, then table rows with cells joined by tabs."""
    try:
        document = docx.Document(io.BytesIO(data))
    except Exception as exc:
        raise DocumentReadError(f"Cannot open DOCX: {exc}") from exc
    parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                parts.append("\t".join(cells))
    return "\n".join(parts)


def extract_xlsx_text(data: bytes) -> str:
    """One ``[Sheet: name]`` header per worksheet followed by its non-empty rows."""
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), data_only=True, read_only=True)
    except Exception as exc:
        raise DocumentReadError(f"Cannot open XLSX: {exc}") from exc
    parts: list[str] = []
    try:
        for sheet in workbook.worksheets:
            parts.append(f"[Sheet: {sheet.title}]")
            for row in sheet.iter_rows(values_only=True):
                values = [str(value) for value in row if value not in (None, "")]
                if values:
                    parts.append("\t".join(values))
    finally:
        workbook.close()
    return "\n".join(parts)
