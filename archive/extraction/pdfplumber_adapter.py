import io

import pdfplumber

from archive.extraction.base import BaseTextExtractor
from archive.extraction.exceptions import ExtractionError


class PdfPlumberAdapter(BaseTextExtractor):
    """Reads the text layer of a PDF with pdfplumber."""

    def extract(self, data: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as exc:
            raise ExtractionError(f"pdfplumber could not read the PDF: {exc}") from exc
        return "\n".join(pages).strip()
