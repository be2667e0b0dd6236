from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from archive.database.models import DocumentRecord


@dataclass
class UploadRequest:
    """One file the user asked to ingest."""

    owner_id: str
    title: str
    file_name: str
    content_type: str
    data: bytes
    ocr_requested: bool = False
    folder_id: str | None = None
    description: str | None = None
    tag_ids: list[str] = field(default_factory=list)
    access_token: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class DuplicateMatch:
    """An existing non-deleted document with the same content fingerprint."""

    document_id: str
    title: str
    file_name: str


@dataclass
class IngestionResult:
    document: DocumentRecord | None = None
    duplicate_of: DuplicateMatch | None = None
    cancelled: bool = False


# Returns True to continue with the upload, False to cancel it.
DuplicateDecision = Callable[[DuplicateMatch], Awaitable[bool]]
