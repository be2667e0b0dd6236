from dataclasses import dataclass, replace

from archive.ocr.states import OcrStatus


@dataclass(frozen=True)
class OcrSnapshot:
    """Client-observable OCR state of one document."""

    document_id: str
    status: OcrStatus
    enabled: bool
    error: str | None = None
    retry_count: int = 0
    has_text: bool = False

    def as_queued(self) -> "OcrSnapshot":
        """Local view of this snapshot right after a retry was requested."""
        return replace(self, status=OcrStatus.QUEUED, enabled=True, error=None)
