from dataclasses import dataclass
from typing import Any

import psycopg

from archive.database.models import EventRecord
from archive.database.repositories.event_repository import EventRepository
from archive.dossiers.events import (
    DossierEvent,
    EventPayload,
    payload_from_dict,
    payload_to_dict,
)
from archive.logging.logger import Log, LogCategory


@dataclass(frozen=True)
class TimelinePage:
    events: list[DossierEvent]
    total: int
    offset: int
    limit: int


class Timeline:
    """Append-only per-dossier event log.

    ``append`` must run on the connection (and transaction) of the mutation
    that caused the event, so the event exists before the operation reports
    success. There is no way to edit or remove an event.
    """

    def __init__(self, event_repo: EventRepository) -> None:
        self._event_repo = event_repo

    async def append(
        self,
        conn: psycopg.AsyncConnection[Any],
        dossier_id: str,
        payload: EventPayload,
        actor_id: str | None,
    ) -> DossierEvent:
        record = await self._event_repo.append(
            conn,
            dossier_id,
            payload.event_type.value,
            payload_to_dict(payload),
            actor_id,
        )
        Log.debug(
            f"Appended {payload.event_type.value} event to dossier {dossier_id}",
            category=LogCategory.DOSSIER,
            dossier_id=dossier_id,
        )
        return _decode(record)

    async def list(self, dossier_id: str, offset: int = 0, limit: int = 20) -> list[DossierEvent]:
        """Events newest first, ``limit`` entries starting at ``offset``."""
        if offset < 0 or limit < 1:
            raise ValueError("offset must be >= 0 and limit >= 1")
        records = await self._event_repo.list_for_dossier(dossier_id, offset, limit)
        return [_decode(record) for record in records]

    async def page(self, dossier_id: str, page: int = 1, per_page: int = 5) -> TimelinePage:
        """1-based page of the timeline."""
        if page < 1:
            raise ValueError("page must be >= 1")
        offset = (page - 1) * per_page
        events = await self.list(dossier_id, offset=offset, limit=per_page)
        total = await self._event_repo.count_for_dossier(dossier_id)
        return TimelinePage(events=events, total=total, offset=offset, limit=per_page)


def _decode(record: EventRecord) -> DossierEvent:
    return DossierEvent(
        id=record.id,
        dossier_id=record.dossier_id,
        payload=payload_from_dict(record.event_type, record.payload),
        created_by=record.created_by,
        created_at=record.created_at,
    )
