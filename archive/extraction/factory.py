from archive.config.settings import Settings
from archive.extraction.base import BaseTextExtractor
from archive.extraction.exceptions import UnsupportedMimeTypeError
from archive.extraction.pdfplumber_adapter import PdfPlumberAdapter
from archive.extraction.pymupdf_adapter import PyMuPdfAdapter
from archive.extraction.tesseract_adapter import TesseractAdapter

IMAGE_TYPES = ("image/png", "image/jpeg", "image/jpg")


class ExtractorFactory:
    """Creates the PDF and image extractors named in settings."""

    PDF_ADAPTERS: dict[str, type[BaseTextExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> "ExtractorRouter":
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.PDF_ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.PDF_ADAPTERS)}"
            )
        return ExtractorRouter(
            pdf=adapter_cls(),
            image=TesseractAdapter(settings.ocr_language, settings.tesseract_cmd),
        )


class ExtractorRouter:
    """Picks the extractor for a document's MIME type."""

    def __init__(self, pdf: BaseTextExtractor, image: BaseTextExtractor) -> None:
        self._pdf = pdf
        self._image = image

    def for_mime(self, mime_type: str) -> BaseTextExtractor:
        if mime_type == "application/pdf":
            return self._pdf
        if mime_type in IMAGE_TYPES:
            return self._image
        raise UnsupportedMimeTypeError(f"No text extractor for MIME type '{mime_type}'")
