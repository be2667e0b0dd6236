"""OCR status values and the legal transitions between them.

``completed`` with ``ocr_enabled = false`` stands for "disabled after
completion"; there is no dedicated value for it. ``pending`` is written only
when OCR is disabled on a failed job and is displayed as "disabled".
``paused`` appears in legacy rows and is read as ``queued``; it is never
written.
"""

from enum import Enum
from typing import NamedTuple

from archive.ocr.exceptions import InvalidTransitionError


class OcrStatus(str, Enum):
    NONE = "none"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    PENDING = "pending"

    @property
    def is_in_flight(self) -> bool:
        return self in (OcrStatus.QUEUED, OcrStatus.PROCESSING)

    @property
    def is_terminal(self) -> bool:
        return not self.is_in_flight


class OcrEvent(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"
    START = "start"
    SUCCEED = "succeed"
    FAIL = "fail"
    RETRY = "retry"
    REQUEUE = "requeue"


LEGACY_ALIASES: dict[str, OcrStatus] = {"paused": OcrStatus.QUEUED}

_ANY = frozenset(OcrStatus)

ALLOWED_SOURCES: dict[OcrEvent, frozenset[OcrStatus]] = {
    OcrEvent.ENABLE: _ANY,
    OcrEvent.DISABLE: _ANY,
    OcrEvent.START: frozenset({OcrStatus.QUEUED}),
    OcrEvent.SUCCEED: frozenset({OcrStatus.PROCESSING}),
    OcrEvent.FAIL: frozenset({OcrStatus.PROCESSING}),
    OcrEvent.RETRY: frozenset({OcrStatus.FAILED}),
    OcrEvent.REQUEUE: frozenset({OcrStatus.QUEUED}),
}

_TARGETS: dict[OcrEvent, OcrStatus] = {
    OcrEvent.ENABLE: OcrStatus.QUEUED,
    OcrEvent.START: OcrStatus.PROCESSING,
    OcrEvent.SUCCEED: OcrStatus.COMPLETED,
    OcrEvent.FAIL: OcrStatus.FAILED,
    OcrEvent.RETRY: OcrStatus.QUEUED,
    OcrEvent.REQUEUE: OcrStatus.QUEUED,
}

# Disabling OCR parks a failed job; every other status is kept.
PARKED_ON_DISABLE: dict[OcrStatus, OcrStatus] = {OcrStatus.FAILED: OcrStatus.PENDING}


class Guard(NamedTuple):
    """Stored values a guarded UPDATE may start from and the value it writes."""

    sources: list[str]
    target: str


def normalize_status(value: str | None) -> OcrStatus:
    """Map a stored ocr_status value to an OcrStatus.

    NULL and empty values (rows uploaded without OCR) read as ``none``.

    Raises:
        ValueError: for values outside the known set.
    """
    if value is None or value == "":
        return OcrStatus.NONE
    alias = LEGACY_ALIASES.get(value)
    if alias is not None:
        return alias
    return OcrStatus(value)


def can_apply(current: OcrStatus, event: OcrEvent) -> bool:
    return current in ALLOWED_SOURCES[event]


def next_status(document_id: str, current: OcrStatus, event: OcrEvent) -> OcrStatus:
    """Return the status reached by applying ``event`` to ``current``.

    Raises:
        InvalidTransitionError: if ``event`` is not allowed from ``current``.
    """
    if not can_apply(current, event):
        raise InvalidTransitionError(document_id, current.value, event.value)
    if event is OcrEvent.DISABLE:
        return PARKED_ON_DISABLE.get(current, current)
    return _TARGETS[event]


def guard(event: OcrEvent) -> Guard:
    """Build the UPDATE guard for ``event`` from the transition table.

    Raises:
        KeyError: for DISABLE, whose target depends on the current status.
    """
    return Guard(stored_values(ALLOWED_SOURCES[event]), _TARGETS[event].value)


def stored_values(statuses: frozenset[OcrStatus]) -> list[str]:
    """Stored column values matching ``statuses``, legacy aliases included."""
    values = {status.value for status in statuses}
    for legacy, status in LEGACY_ALIASES.items():
        if status in statuses:
            values.add(legacy)
    return sorted(values)
