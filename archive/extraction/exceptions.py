class ExtractionError(Exception):
    """Raised when text extraction fails or yields no text."""


class UnsupportedMimeTypeError(ExtractionError):
    """Raised when no extractor handles a document's MIME type."""
