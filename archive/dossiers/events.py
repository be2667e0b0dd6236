"""Typed payloads for dossier timeline events.

Each event type has exactly one payload dataclass. ``PAYLOAD_TYPES`` is
checked at import time to cover every ``EventType``, so a new type cannot be
added without a payload shape.
"""

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar


class EventType(str, Enum):
    CREATED = "created"
    DOCUMENT_ADDED = "document_added"
    DOCUMENT_REMOVED = "document_removed"
    FOLDER_ADDED = "folder_added"
    FOLDER_REMOVED = "folder_removed"
    STATUS_CHANGED = "status_changed"
    PHASE_CHANGED = "phase_changed"
    ADMIN_STATE_CHANGED = "admin_state_changed"
    NOTE = "note"


@dataclass(frozen=True)
class DossierCreated:
    event_type: ClassVar[EventType] = EventType.CREATED
    title: str
    type: str


@dataclass(frozen=True)
class DocumentAdded:
    event_type: ClassVar[EventType] = EventType.DOCUMENT_ADDED
    document_id: str
    title: str | None = None


@dataclass(frozen=True)
class DocumentRemoved:
    event_type: ClassVar[EventType] = EventType.DOCUMENT_REMOVED
    document_id: str
    title: str | None = None


@dataclass(frozen=True)
class FolderAdded:
    event_type: ClassVar[EventType] = EventType.FOLDER_ADDED
    folder_id: str
    name: str | None = None


@dataclass(frozen=True)
class FolderRemoved:
    event_type: ClassVar[EventType] = EventType.FOLDER_REMOVED
    folder_id: str
    name: str | None = None


@dataclass(frozen=True)
class StatusChanged:
    event_type: ClassVar[EventType] = EventType.STATUS_CHANGED
    from_status: str
    to_status: str


@dataclass(frozen=True)
class PhaseChanged:
    event_type: ClassVar[EventType] = EventType.PHASE_CHANGED
    from_phase: str | None
    to_phase: str | None


@dataclass(frozen=True)
class AdminStateChanged:
    event_type: ClassVar[EventType] = EventType.ADMIN_STATE_CHANGED
    from_state: str
    to_state: str


@dataclass(frozen=True)
class Note:
    event_type: ClassVar[EventType] = EventType.NOTE
    body: str


EventPayload = (
    DossierCreated
    | DocumentAdded
    | DocumentRemoved
    | FolderAdded
    | FolderRemoved
    | StatusChanged
    | PhaseChanged
    | AdminStateChanged
    | Note
)

PAYLOAD_TYPES: dict[EventType, type[Any]] = {
    cls.event_type: cls
    for cls in (
        DossierCreated,
        DocumentAdded,
        DocumentRemoved,
        FolderAdded,
        FolderRemoved,
        StatusChanged,
        PhaseChanged,
        AdminStateChanged,
        Note,
    )
}

if set(PAYLOAD_TYPES) != set(EventType):
    missing = sorted(t.value for t in set(EventType) - set(PAYLOAD_TYPES))
    raise RuntimeError(f"Event types without a payload shape: {missing}")

# Stored JSON keys for from/to transitions are "from" and "to".
_WIRE_KEYS: dict[str, str] = {
    "from_status": "from",
    "to_status": "to",
    "from_phase": "from",
    "to_phase": "to",
    "from_state": "from",
    "to_state": "to",
}


@dataclass(frozen=True)
class DossierEvent:
    """A timeline entry with its decoded payload."""

    id: str
    dossier_id: str
    payload: EventPayload
    created_by: str | None
    created_at: datetime

    @property
    def event_type(self) -> EventType:
        return self.payload.event_type


def payload_to_dict(payload: EventPayload) -> dict[str, Any]:
    """Serialize a payload to the JSON object stored in dossier_events.payload."""
    return {_WIRE_KEYS.get(key, key): value for key, value in asdict(payload).items()}


def payload_from_dict(event_type: str | EventType, data: dict[str, Any] | None) -> EventPayload:
    """Decode a stored payload for ``event_type``.

    Raises:
        ValueError: for an unknown event type or a payload missing required keys.
    """
    kind = EventType(event_type)
    cls = PAYLOAD_TYPES[kind]
    data = data or {}
    kwargs: dict[str, Any] = {}
    for field in fields(cls):
        wire_key = _WIRE_KEYS.get(field.name, field.name)
        if wire_key in data:
            kwargs[field.name] = data[wire_key]
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise ValueError(f"Invalid payload for '{kind.value}' event: {exc}") from exc


def describe(event: DossierEvent) -> tuple[str, str]:
    """Human-readable (label, detail) pair for a timeline entry."""
    payload = event.payload
    if isinstance(payload, DossierCreated):
        return "Dossier created", f'"{payload.title}"'
    if isinstance(payload, DocumentAdded):
        return "Document added", payload.title or ""
    if isinstance(payload, DocumentRemoved):
        return "Document removed", payload.title or ""
    if isinstance(payload, FolderAdded):
        return "Folder added", payload.name or ""
    if isinstance(payload, FolderRemoved):
        return "Folder removed", payload.name or ""
    if isinstance(payload, StatusChanged):
        return "Status changed", f"{payload.from_status} → {payload.to_status}"
    if isinstance(payload, PhaseChanged):
        return "Phase changed", f"{payload.from_phase or '—'} → {payload.to_phase or '—'}"
    if isinstance(payload, AdminStateChanged):
        return "Admin state changed", f"{payload.from_state} → {payload.to_state}"
    if isinstance(payload, Note):
        return "Note", payload.body
    raise TypeError(f"Unhandled event payload {type(payload).__name__}")
