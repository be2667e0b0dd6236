class OcrError(Exception):
    """Base exception for OCR job lifecycle errors."""


class DocumentNotFoundError(OcrError):
    """Raised when a document cannot be found (or is soft-deleted)."""


class InvalidTransitionError(OcrError):
    """Raised when an OCR status change is not allowed from the current status."""

    def __init__(self, document_id: str, current: str | None, event: str) -> None:
        self.document_id = document_id
        self.current = current
        self.event = event
        super().__init__(
            f"Cannot apply '{event}' to document {document_id} in OCR status '{current}'"
        )
