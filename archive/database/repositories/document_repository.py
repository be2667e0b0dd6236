from typing import Any

import psycopg
from psycopg.rows import dict_row

from archive.database.connection import get_connection
from archive.database.models import DocumentRecord, NewDocument
from archive.ocr.exceptions import DocumentNotFoundError
from archive.ocr.models import OcrSnapshot
from archive.ocr.states import Guard, normalize_status

_COLUMNS = """
    id, user_id, title, description, file_name, file_size, file_type,
    file_url, storage_path, file_checksum, folder_id, ocr_enabled, ocr_status,
    ocr_text, ocr_error, ocr_retry_count, ocr_started_at, ocr_completed_at,
    public_link, is_public, deleted_at, created_at, updated_at
"""


def _to_record(row: dict[str, Any]) -> DocumentRecord:
    data = dict(row)
    for key in ("id", "user_id", "folder_id"):
        if data.get(key) is not None:
            data[key] = str(data[key])
    data["ocr_status"] = data.get("ocr_status") or "none"
    return DocumentRecord(**data)


class DocumentRepository:
    """Database operations for the documents table.

    Every read filters soft-deleted rows. OCR status changes are guarded
    UPDATEs: they return None when the row is not in an allowed status.
    """

    async def find_by_id(self, document_id: str) -> DocumentRecord:
        """Find a non-deleted document by ID.

        Raises:
            DocumentNotFoundError: if no such document exists.
        """
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE id = %s AND deleted_at IS NULL
                    """,
                    (document_id,),
                )
                row = await cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _to_record(row)

    async def find_by_checksum(self, user_id: str, checksum: str) -> DocumentRecord | None:
        """Oldest non-deleted document of ``user_id`` with this content fingerprint."""
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE user_id = %s
                      AND file_checksum = %s
                      AND deleted_at IS NULL
                    ORDER BY created_at
                    LIMIT 1
                    """,
                    (user_id, checksum),
                )
                row = await cur.fetchone()
        return _to_record(row) if row is not None else None

    async def insert(self, document: NewDocument) -> DocumentRecord:
        """Create a document row with ``ocr_retry_count = 0``."""
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"""
                    INSERT INTO documents
                    (user_id, title, description, file_name, file_size, file_type,
                     file_url, storage_path, file_checksum, folder_id,
                     ocr_enabled, ocr_status, ocr_started_at, ocr_retry_count,
                     public_link, is_public)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 0, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        document.user_id,
                        document.title,
                        document.description,
                        document.file_name,
                        document.file_size,
                        document.file_type,
                        document.file_url,
                        document.storage_path,
                        document.file_checksum,
                        document.folder_id,
                        document.ocr_enabled,
                        document.ocr_status,
                        document.ocr_started_at,
                        document.public_link,
                        document.is_public,
                    ),
                )
                row = await cur.fetchone()
            await conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO documents returned no row")
        return _to_record(row)

    async def add_tags(self, document_id: str, tag_ids: list[str]) -> None:
        """Associate existing tags with a document."""
        if not tag_ids:
            return
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.executemany(
                    "INSERT INTO document_tags (document_id, tag_id) VALUES (%s, %s)",
                    [(document_id, tag_id) for tag_id in tag_ids],
                )
            await conn.commit()

    async def fetch_ocr_snapshot(self, document_id: str) -> OcrSnapshot:
        """Read only the OCR columns of a document.

        Raises:
            DocumentNotFoundError: if no such document exists.
        """
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT id, ocr_enabled, ocr_status, ocr_error, ocr_retry_count,
                           ocr_text IS NOT NULL AS has_text
                    FROM documents
                    WHERE id = %s AND deleted_at IS NULL
                    """,
                    (document_id,),
                )
                row = await cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return OcrSnapshot(
            document_id=str(row["id"]),
            status=normalize_status(row["ocr_status"]),
            enabled=bool(row["ocr_enabled"]),
            error=row["ocr_error"],
            retry_count=row["ocr_retry_count"],
            has_text=bool(row["has_text"]),
        )

    async def list_by_owner(self, user_id: str) -> list[DocumentRecord]:
        """Non-deleted documents of a user, newest first."""
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE user_id = %s AND deleted_at IS NULL
                    ORDER BY created_at DESC
                    """,
                    (user_id,),
                )
                rows = await cur.fetchall()
        return [_to_record(row) for row in rows]

    async def enable_ocr(self, document_id: str, target: str) -> DocumentRecord | None:
        """Queue OCR from any status; existing text is kept until replaced."""
        return await self._update_returning(
            """
            UPDATE documents
            SET ocr_enabled = true, ocr_status = %s, ocr_error = NULL,
                ocr_started_at = NOW(), ocr_completed_at = NULL, updated_at = NOW()
            WHERE id = %s AND deleted_at IS NULL
            """,
            (target, document_id),
        )

    async def disable_ocr(
        self, document_id: str, parked: dict[str, str]
    ) -> DocumentRecord | None:
        """Stop OCR, moving statuses found in ``parked`` to their mapped value."""
        if not parked:
            raise ValueError("parked must map at least one status")
        cases = " ".join("WHEN ocr_status = %s THEN %s" for _ in parked)
        params: list[Any] = [value for pair in parked.items() for value in pair]
        return await self._update_returning(
            """
            UPDATE documents
            SET ocr_enabled = false,
                ocr_status = CASE {cases} ELSE ocr_status END,
                updated_at = NOW()
            WHERE id = %s AND deleted_at IS NULL
            """.format(cases=cases),
            (*params, document_id),
        )

    async def requeue(self, document_id: str, guard: Guard) -> DocumentRecord | None:
        """Return a job to the queue and bump the retry counter by exactly one."""
        return await self._update_returning(
            """
            UPDATE documents
            SET ocr_status = %s, ocr_error = NULL,
                ocr_retry_count = ocr_retry_count + 1,
                ocr_started_at = NOW(), ocr_completed_at = NULL, updated_at = NOW()
            WHERE id = %s AND deleted_at IS NULL AND ocr_status = ANY(%s)
            """,
            (guard.target, document_id, guard.sources),
        )

    async def mark_processing(self, document_id: str, guard: Guard) -> DocumentRecord | None:
        return await self._update_returning(
            """
            UPDATE documents
            SET ocr_status = %s, updated_at = NOW()
            WHERE id = %s AND deleted_at IS NULL AND ocr_status = ANY(%s)
            """,
            (guard.target, document_id, guard.sources),
        )

    async def mark_completed(
        self, document_id: str, text: str, guard: Guard
    ) -> DocumentRecord | None:
        return await self._update_returning(
            """
            UPDATE documents
            SET ocr_status = %s, ocr_text = %s, ocr_error = NULL,
                ocr_completed_at = NOW(), updated_at = NOW()
            WHERE id = %s AND deleted_at IS NULL AND ocr_status = ANY(%s)
            """,
            (guard.target, text, document_id, guard.sources),
        )

    async def mark_failed(
        self, document_id: str, error: str, guard: Guard
    ) -> DocumentRecord | None:
        return await self._update_returning(
            """
            UPDATE documents
            SET ocr_status = %s, ocr_error = %s,
                ocr_completed_at = NOW(), updated_at = NOW()
            WHERE id = %s AND deleted_at IS NULL AND ocr_status = ANY(%s)
            """,
            (guard.target, error, document_id, guard.sources),
        )

    async def claim_next_queued(
        self, conn: psycopg.AsyncConnection[Any], guard: Guard
    ) -> DocumentRecord | None:
        """Claim the oldest enabled queued document using SELECT FOR UPDATE SKIP LOCKED.

        ``guard.sources`` are the claimable statuses; the row is moved to ``guard.target``.
        """
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                """
                SELECT id
                FROM documents
                WHERE ocr_enabled = true
                  AND ocr_status = ANY(%s)
                  AND deleted_at IS NULL
                ORDER BY ocr_started_at NULLS FIRST, created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (guard.sources,),
            )
            row = await cur.fetchone()

            if row is None:
                await conn.commit()
                return None

            await cur.execute(
                f"""
                UPDATE documents
                SET ocr_status = %s, updated_at = NOW()
                WHERE id = %s
                RETURNING {_COLUMNS}
                """,
                (guard.target, row["id"]),
            )
            claimed = await cur.fetchone()
        await conn.commit()
        return _to_record(claimed) if claimed is not None else None

    async def soft_delete(self, document_id: str, actor_id: str | None = None) -> None:
        """Soft-delete through the soft_delete_document stored procedure.

        A dossier link is released and recorded as ``document_removed``.
        """
        async with get_connection() as conn:
            await conn.execute(
                "SELECT soft_delete_document(%s::uuid, %s::uuid)", (document_id, actor_id)
            )
            await conn.commit()

    async def _update_returning(
        self, sql: str, params: tuple[Any, ...]
    ) -> DocumentRecord | None:
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(f"{sql} RETURNING {_COLUMNS}", params)
                row = await cur.fetchone()
            await conn.commit()
        return _to_record(row) if row is not None else None
