import io

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Single-page PDF with a small contact form printed as text."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Contact Form")
    c.drawString(72, 700, "Name: Jane Doe")
    c.drawString(72, 680, "Email: jane@example.com")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Valid PDF with a blank page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def acroform_pdf_bytes() -> bytes:
    """PDF with fillable 'full_name', 'email' text fields and an 'agree' checkbox."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Full Name")
    c.acroForm.textfield(name="full_name", x=180, y=712, width=200, height=20, value="")
    c.drawString(72, 680, "Email")
    c.acroForm.textfield(name="email", x=180, y=672, width=200, height=20, value="")
    c.drawString(72, 640, "I agree")
    c.acroForm.checkbox(name="agree", x=180, y=636, size=16, checked=False)
    c.save()
    return buf.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    """A tiny white PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buf, format="PNG")
    return buf.getvalue()
