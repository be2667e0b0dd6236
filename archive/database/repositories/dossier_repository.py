from typing import Any

import psycopg
from psycopg.errors import ForeignKeyViolation, UniqueViolation
from psycopg.rows import dict_row

from archive.database.connection import get_connection
from archive.database.models import DossierLinkRecord, DossierRecord, FolderLinkRecord
from archive.dossiers.exceptions import (
    DossierNotFoundError,
    DuplicateLinkError,
    FolderAlreadyLinkedError,
)

_DOSSIER_COLUMNS = "id, user_id, title, type, status, admin_state, phase, created_at, updated_at"

# Columns a dossier edit may touch; values are the static UPDATE statements.
_FIELD_UPDATES: dict[str, str] = {
    "status": "UPDATE dossiers SET status = %s, updated_at = NOW() WHERE id = %s",
    "phase": "UPDATE dossiers SET phase = %s, updated_at = NOW() WHERE id = %s",
    "admin_state": "UPDATE dossiers SET admin_state = %s, updated_at = NOW() WHERE id = %s",
}


def _str_ids(row: dict[str, Any], *keys: str) -> dict[str, Any]:
    data = dict(row)
    for key in keys:
        if data.get(key) is not None:
            data[key] = str(data[key])
    return data


def _to_dossier(row: dict[str, Any]) -> DossierRecord:
    return DossierRecord(**_str_ids(row, "id", "user_id"))


def _to_link(row: dict[str, Any]) -> DossierLinkRecord:
    return DossierLinkRecord(**_str_ids(row, "id", "dossier_id", "document_id"))


class DossierRepository:
    """Database operations for dossiers, dossier_documents and dossier_folders.

    Writes take an open connection so the caller can put the mutation and its
    timeline event in one transaction.
    """

    async def lock(self, conn: psycopg.AsyncConnection[Any], dossier_id: str) -> DossierRecord:
        """Read a dossier with SELECT FOR UPDATE inside the caller's transaction."""
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                f"SELECT {_DOSSIER_COLUMNS} FROM dossiers WHERE id = %s FOR UPDATE",
                (dossier_id,),
            )
            row = await cur.fetchone()
        if row is None:
            raise DossierNotFoundError(f"Dossier {dossier_id} not found")
        return _to_dossier(row)

    async def create(
        self,
        conn: psycopg.AsyncConnection[Any],
        *,
        user_id: str,
        title: str,
        dossier_type: str,
        status: str,
        admin_state: str,
        phase: str | None,
    ) -> DossierRecord:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                f"""
                INSERT INTO dossiers (user_id, title, type, status, admin_state, phase)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING {_DOSSIER_COLUMNS}
                """,
                (user_id, title, dossier_type, status, admin_state, phase),
            )
            row = await cur.fetchone()
        if row is None:
            raise RuntimeError("INSERT INTO dossiers returned no row")
        return _to_dossier(row)

    async def update_field(
        self,
        conn: psycopg.AsyncConnection[Any],
        dossier_id: str,
        field: str,
        value: str | None,
    ) -> None:
        sql = _FIELD_UPDATES.get(field)
        if sql is None:
            raise ValueError(f"Dossier field '{field}' is not editable")
        async with conn.cursor() as cur:
            await cur.execute(sql, (value, dossier_id))
            if cur.rowcount == 0:
                raise DossierNotFoundError(f"Dossier {dossier_id} not found")

    async def find_link_by_document(self, document_id: str) -> DossierLinkRecord | None:
        """Current link of a document, with the linked dossier's title."""
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT dd.id, dd.dossier_id, dd.document_id, dd.created_at,
                           d.title AS dossier_title
                    FROM dossier_documents dd
                    LEFT JOIN dossiers d ON d.id = dd.dossier_id
                    WHERE dd.document_id = %s
                    """,
                    (document_id,),
                )
                row = await cur.fetchone()
        return _to_link(row) if row is not None else None

    async def insert_link(
        self,
        conn: psycopg.AsyncConnection[Any],
        dossier_id: str,
        document_id: str,
    ) -> DossierLinkRecord:
        """Insert a dossier_documents row.

        Raises:
            DuplicateLinkError: if the unique constraint on document_id rejects it.
            DossierNotFoundError: if a foreign key points at a missing row.
        """
        try:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    INSERT INTO dossier_documents (dossier_id, document_id)
                    VALUES (%s, %s)
                    RETURNING id, dossier_id, document_id, created_at
                    """,
                    (dossier_id, document_id),
                )
                row = await cur.fetchone()
        except UniqueViolation as exc:
            raise DuplicateLinkError(f"Document {document_id} is already linked") from exc
        except ForeignKeyViolation as exc:
            raise DossierNotFoundError(
                f"Dossier {dossier_id} or document {document_id} does not exist"
            ) from exc
        if row is None:
            raise RuntimeError("INSERT INTO dossier_documents returned no row")
        return _to_link(row)

    async def delete_link(
        self, conn: psycopg.AsyncConnection[Any], link_id: str
    ) -> DossierLinkRecord | None:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                """
                DELETE FROM dossier_documents dd
                WHERE dd.id = %s
                RETURNING dd.id, dd.dossier_id, dd.document_id, dd.created_at,
                          (SELECT title FROM documents WHERE id = dd.document_id)
                              AS document_title
                """,
                (link_id,),
            )
            row = await cur.fetchone()
        return _to_link(row) if row is not None else None

    async def linked_document_ids(self, user_id: str) -> set[str]:
        """IDs of the user's documents linked to any dossier."""
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT dd.document_id
                    FROM dossier_documents dd
                    JOIN dossiers d ON d.id = dd.dossier_id
                    WHERE d.user_id = %s
                    """,
                    (user_id,),
                )
                rows = await cur.fetchall()
        return {str(row[0]) for row in rows}

    async def insert_folder_link(
        self,
        conn: psycopg.AsyncConnection[Any],
        dossier_id: str,
        folder_id: str,
    ) -> FolderLinkRecord:
        """Raises:
        FolderAlreadyLinkedError: if the folder is already linked to this dossier.
        """
        try:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    INSERT INTO dossier_folders (dossier_id, folder_id)
                    VALUES (%s, %s)
                    RETURNING id, dossier_id, folder_id, created_at
                    """,
                    (dossier_id, folder_id),
                )
                row = await cur.fetchone()
        except UniqueViolation as exc:
            raise FolderAlreadyLinkedError(folder_id, dossier_id) from exc
        if row is None:
            raise RuntimeError("INSERT INTO dossier_folders returned no row")
        return FolderLinkRecord(**_str_ids(row, "id", "dossier_id", "folder_id"))

    async def delete_folder_link(
        self, conn: psycopg.AsyncConnection[Any], link_id: str
    ) -> FolderLinkRecord | None:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                """
                DELETE FROM dossier_folders
                WHERE id = %s
                RETURNING id, dossier_id, folder_id, created_at
                """,
                (link_id,),
            )
            row = await cur.fetchone()
        if row is None:
            return None
        return FolderLinkRecord(**_str_ids(row, "id", "dossier_id", "folder_id"))
