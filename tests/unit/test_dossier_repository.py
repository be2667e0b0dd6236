import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from psycopg.errors import ForeignKeyViolation, UniqueViolation

from archive.database.repositories.dossier_repository import DossierRepository
from archive.dossiers.exceptions import (
    DossierNotFoundError,
    DuplicateLinkError,
    FolderAlreadyLinkedError,
)

DOSSIER_ID = uuid.UUID("aaaaaaaa-0000-0000-0000-000000000001")
DOCUMENT_ID = uuid.UUID("dddddddd-0000-0000-0000-000000000001")
LINK_ID = uuid.UUID("11111111-0000-0000-0000-000000000001")


def _make_conn() -> tuple[MagicMock, AsyncMock]:
    mock_cursor = AsyncMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__aenter__.return_value = mock_cursor
    return mock_conn, mock_cursor


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, AsyncMock]:
    mock_conn, mock_cursor = _make_conn()
    mock_get_conn.return_value.__aenter__.return_value = mock_conn
    return mock_conn, mock_cursor


def _dossier_row(**overrides: object) -> dict:
    row = {
        "id": DOSSIER_ID,
        "user_id": uuid.UUID("99999999-0000-0000-0000-000000000001"),
        "title": "ACME GmbH",
        "type": "Client",
        "status": "open",
        "admin_state": "ok",
        "phase": None,
        "created_at": None,
        "updated_at": None,
    }
    row.update(overrides)
    return row


class TestLock:
    def test_selects_for_update(self) -> None:
        mock_conn, mock_cursor = _make_conn()
        mock_cursor.fetchone.return_value = _dossier_row(status="waiting")

        dossier = asyncio.run(DossierRepository().lock(mock_conn, str(DOSSIER_ID)))

        assert dossier.status == "waiting"
        sql, _params = mock_cursor.execute.call_args.args
        assert "FOR UPDATE" in sql


class TestUpdateField:
    def test_updates_whitelisted_field(self) -> None:
        mock_conn, mock_cursor = _make_conn()
        mock_cursor.rowcount = 1

        asyncio.run(DossierRepository().update_field(mock_conn, "x", "phase", "intake"))

        sql, params = mock_cursor.execute.call_args.args
        assert "SET phase = %s" in sql
        assert params == ("intake", "x")

    def test_rejects_unknown_field(self) -> None:
        mock_conn, _cursor = _make_conn()

        with pytest.raises(ValueError, match="not editable"):
            asyncio.run(DossierRepository().update_field(mock_conn, "x", "title", "t"))

    def test_missing_row_raises(self) -> None:
        mock_conn, mock_cursor = _make_conn()
        mock_cursor.rowcount = 0

        with pytest.raises(DossierNotFoundError):
            asyncio.run(DossierRepository().update_field(mock_conn, "x", "status", "done"))


class TestFindLinkByDocument:
    @patch("archive.database.repositories.dossier_repository.get_connection")
    def test_returns_link_with_dossier_title(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {
            "id": LINK_ID,
            "dossier_id": DOSSIER_ID,
            "document_id": DOCUMENT_ID,
            "created_at": None,
            "dossier_title": "ACME GmbH",
        }

        link = asyncio.run(DossierRepository().find_link_by_document(str(DOCUMENT_ID)))

        assert link is not None
        assert link.dossier_id == str(DOSSIER_ID)
        assert link.dossier_title == "ACME GmbH"

    @patch("archive.database.repositories.dossier_repository.get_connection")
    def test_returns_none_when_unlinked(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert asyncio.run(DossierRepository().find_link_by_document("d")) is None


class TestInsertLink:
    def test_returns_new_link(self) -> None:
        mock_conn, mock_cursor = _make_conn()
        mock_cursor.fetchone.return_value = {
            "id": LINK_ID,
            "dossier_id": DOSSIER_ID,
            "document_id": DOCUMENT_ID,
            "created_at": None,
        }

        link = asyncio.run(
            DossierRepository().insert_link(mock_conn, str(DOSSIER_ID), str(DOCUMENT_ID))
        )

        assert link.id == str(LINK_ID)
        assert link.document_id == str(DOCUMENT_ID)

    def test_unique_violation_maps_to_duplicate_link(self) -> None:
        mock_conn, mock_cursor = _make_conn()
        mock_cursor.execute.side_effect = UniqueViolation("duplicate key")

        with pytest.raises(DuplicateLinkError):
            asyncio.run(DossierRepository().insert_link(mock_conn, "dos", "doc"))

    def test_foreign_key_violation_maps_to_not_found(self) -> None:
        mock_conn, mock_cursor = _make_conn()
        mock_cursor.execute.side_effect = ForeignKeyViolation("missing parent")

        with pytest.raises(DossierNotFoundError):
            asyncio.run(DossierRepository().insert_link(mock_conn, "dos", "doc"))


class TestDeleteLink:
    def test_returns_deleted_link_with_document_title(self) -> None:
        mock_conn, mock_cursor = _make_conn()
        mock_cursor.fetchone.return_value = {
            "id": LINK_ID,
            "dossier_id": DOSSIER_ID,
            "document_id": DOCUMENT_ID,
            "created_at": None,
            "document_title": "Lease",
        }

        link = asyncio.run(DossierRepository().delete_link(mock_conn, str(LINK_ID)))

        assert link is not None
        assert link.document_title == "Lease"

    def test_returns_none_when_already_gone(self) -> None:
        mock_conn, mock_cursor = _make_conn()
        mock_cursor.fetchone.return_value = None

        assert asyncio.run(DossierRepository().delete_link(mock_conn, "x")) is None


class TestLinkedDocumentIds:
    @patch("archive.database.repositories.dossier_repository.get_connection")
    def test_returns_string_ids(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [(DOCUMENT_ID,)]

        ids = asyncio.run(DossierRepository().linked_document_ids("u1"))

        assert ids == {str(DOCUMENT_ID)}


class TestFolderLinks:
    def test_duplicate_folder_link_raises(self) -> None:
        mock_conn, mock_cursor = _make_conn()
        mock_cursor.execute.side_effect = UniqueViolation("duplicate key")

        with pytest.raises(FolderAlreadyLinkedError):
            asyncio.run(DossierRepository().insert_folder_link(mock_conn, "dos", "fold"))

    def test_delete_missing_folder_link_returns_none(self) -> None:
        mock_conn, mock_cursor = _make_conn()
        mock_cursor.fetchone.return_value = None

        assert asyncio.run(DossierRepository().delete_folder_link(mock_conn, "x")) is None
