from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    id: str
    user_id: str
    title: str
    file_name: str
    file_size: int
    file_type: str
    file_url: str
    storage_path: str
    file_checksum: str
    ocr_enabled: bool = False
    ocr_status: str = "none"
    ocr_text: str | None = None
    ocr_error: str | None = None
    ocr_retry_count: int = 0
    ocr_started_at: datetime | None = None
    ocr_completed_at: datetime | None = None
    description: str | None = None
    folder_id: str | None = None
    public_link: str | None = None
    is_public: bool = False
    deleted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class NewDocument:
    """Column values for a documents insert."""

    user_id: str
    title: str
    file_name: str
    file_size: int
    file_type: str
    file_url: str
    storage_path: str
    file_checksum: str
    ocr_enabled: bool
    ocr_status: str
    ocr_started_at: datetime | None
    public_link: str
    is_public: bool = True
    description: str | None = None
    folder_id: str | None = None


@dataclass
class DossierRecord:
    """Represents a row from the dossiers table."""

    id: str
    user_id: str
    title: str
    type: str
    status: str
    admin_state: str
    phase: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class DossierLinkRecord:
    """Represents a row from the dossier_documents table."""

    id: str
    dossier_id: str
    document_id: str
    dossier_title: str | None = None
    document_title: str | None = None
    created_at: datetime | None = None


@dataclass
class FolderLinkRecord:
    """Represents a row from the dossier_folders table."""

    id: str
    dossier_id: str
    folder_id: str
    created_at: datetime | None = None


@dataclass
class EventRecord:
    """Represents a row from the dossier_events table (payload still raw JSON)."""

    id: str
    dossier_id: str
    event_type: str
    payload: dict[str, Any]
    created_by: str | None
    created_at: datetime
    seq: int = 0
