import pymupdf

from archive.extraction.base import BaseTextExtractor
from archive.extraction.exceptions import ExtractionError


class PyMuPdfAdapter(BaseTextExtractor):
    """Reads the text layer of a PDF with PyMuPDF."""

    def extract(self, data: bytes) -> str:
        try:
            with pymupdf.open(stream=data, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [page.get_text() for page in doc]
        except Exception as exc:
            raise ExtractionError(f"PyMuPDF could not read the PDF: {exc}") from exc
        return "\n".join(pages).strip()
