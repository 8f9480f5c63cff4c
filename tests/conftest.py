import io

import pytest
from reportlab.lib.pagesizes import landscape, letter
from reportlab.pdfgen import canvas


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Service agreement")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a three-page PDF; the signature line is on the last page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Terms, page one")
    c.showPage()
    c.drawString(72, 720, "Terms, page two")
    c.showPage()
    c.drawString(72, 120, "Signature: ____________")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def landscape_pdf_bytes() -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=landscape(letter))
    c.drawString(72, 500, "Wide layout")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def other_pdf_bytes() -> bytes:
    """A second, different single-page PDF."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Non-disclosure agreement")
    c.save()
    return buf.getvalue()
