from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from archive.database.connection import get_connection
from archive.database.models import EventRecord

_COLUMNS = "id, seq, dossier_id, event_type, payload, created_by, created_at"


def _to_event(row: dict[str, Any]) -> EventRecord:
    return EventRecord(
        id=str(row["id"]),
        seq=row["seq"],
        dossier_id=str(row["dossier_id"]),
        event_type=row["event_type"],
        payload=row["payload"] or {},
        created_by=str(row["created_by"]) if row["created_by"] is not None else None,
        created_at=row["created_at"],
    )


class EventRepository:
    """Insert and read operations for dossier_events. Rows are never updated or deleted."""

    async def append(
        self,
        conn: psycopg.AsyncConnection[Any],
        dossier_id: str,
        event_type: str,
        payload: dict[str, Any],
        created_by: str | None,
    ) -> EventRecord:
        """Insert one event inside the caller's transaction."""
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                f"""
                INSERT INTO dossier_events (dossier_id, event_type, payload, created_by)
                VALUES (%s, %s, %s, %s)
                RETURNING {_COLUMNS}
                """,
                (dossier_id, event_type, Jsonb(payload), created_by),
            )
            row = await cur.fetchone()
        if row is None:
            raise RuntimeError("INSERT INTO dossier_events returned no row")
        return _to_event(row)

    async def list_for_dossier(
        self, dossier_id: str, offset: int, limit: int
    ) -> list[EventRecord]:
        """Events of a dossier, newest first."""
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM dossier_events
                    WHERE dossier_id = %s
                    ORDER BY created_at DESC, seq DESC
                    OFFSET %s LIMIT %s
                    """,
                    (dossier_id, offset, limit),
                )
                rows = await cur.fetchall()
        return [_to_event(row) for row in rows]

    async def count_for_dossier(self, dossier_id: str) -> int:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "SELECT COUNT(*) FROM dossier_events WHERE dossier_id = %s",
                    (dossier_id,),
                )
                row = await cur.fetchone()
        return int(row[0]) if row is not None else 0
