import io

import pytest
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas


def render_pdf(*pages: str) -> bytes:
    """Render one A4 page per string; an empty string leaves the page blank."""
    out = io.BytesIO()
    pdf = canvas.Canvas(out, pagesize=A4)
    for text in pages:
        if text:
            pdf.drawString(60, 780, text)
        pdf.showPage()
    pdf.save()
    return out.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    return render_pdf("Invoice 2024-017 from Acme")


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    return render_pdf("Contract page one", "Contract page two")


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    # A text-less page, as produced by a scanner.
    return render_pdf("")


@pytest.fixture()
def sample_png_bytes() -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (32, 16), "white").save(out, format="PNG")
    return out.getvalue()
