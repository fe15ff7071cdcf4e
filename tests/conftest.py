import io

import docx
import openpyxl
import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docpipe.documents.models import DocumentDescriptor


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a single-page invoice-like PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Tax Invoice No 42")
    c.drawString(72, 700, "GST 18% CGST 9% SGST 9%")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_docx_bytes() -> bytes:
    """Generate a DOCX with one paragraph and a one-row table."""
    document = docx.Document()
    document.add_paragraph("Tax Invoice No 42")
    document.add_paragraph("   ")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Total"
    table.rows[0].cells[1].text = "11,800"
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


@pytest.fixture()
def sample_xlsx_bytes() -> bytes:
    """Generate a single-sheet XLSX with a header row and one data row."""
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Invoices"
    sheet.append(["Invoice No", "Amount"])
    sheet.append(["2024/118", 11800])
    buf = io.BytesIO()
    workbook.save(buf)
    return buf.getvalue()


@pytest.fixture()
def invoice_text() -> str:
    return (
        "TAX INVOICE\n"
        "Invoice No: 2024/118\n"
        "GST registration 33ABCDE1234F1Z5\n"
        "CGST 9%  SGST 9%  IGST 0%\n"
        "Total amount: 11,800\n"
    )


@pytest.fixture()
def text_document(invoice_text: str) -> DocumentDescriptor:
    return DocumentDescriptor.from_bytes(
        "invoice_2024_118.txt",
        invoice_text.encode("utf-8"),
        "text/plain",
        last_modified=1_700_000_000.0,
    )
