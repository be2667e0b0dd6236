import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from archive.database.models import DocumentRecord, NewDocument
from archive.database.repositories.document_repository import DocumentRepository
from archive.ocr.exceptions import DocumentNotFoundError
from archive.ocr.states import Guard, OcrStatus

DOC_ID = uuid.UUID("550e8400-e29b-41d4-a716-446655440000")
USER_ID = uuid.UUID("11111111-2222-3333-4444-555555555555")
CLAIM = Guard(["queued"], "processing")
COMPLETE = Guard(["processing"], "completed")


def _make_row(**overrides: object) -> dict:
    row = {
        "id": DOC_ID,
        "user_id": USER_ID,
        "title": "Lease agreement",
        "description": None,
        "file_name": "lease.pdf",
        "file_size": 2048,
        "file_type": "application/pdf",
        "file_url": "http://files/u/1.pdf",
        "storage_path": f"{USER_ID}/1700000000000.pdf",
        "file_checksum": "a" * 64,
        "folder_id": None,
        "ocr_enabled": True,
        "ocr_status": "queued",
        "ocr_text": None,
        "ocr_error": None,
        "ocr_retry_count": 0,
        "ocr_started_at": None,
        "ocr_completed_at": None,
        "public_link": "lx1-abcdefghi",
        "is_public": True,
        "deleted_at": None,
        "created_at": None,
        "updated_at": None,
    }
    row.update(overrides)
    return row


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, AsyncMock]:
    """Wire up a mock async connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = AsyncMock()
    mock_conn = MagicMock()
    mock_conn.commit = AsyncMock()
    mock_conn.execute = AsyncMock()
    mock_conn.cursor.return_value.__aenter__.return_value = mock_cursor
    mock_get_conn.return_value.__aenter__.return_value = mock_conn
    return mock_conn, mock_cursor


class TestFindById:
    @patch("archive.database.repositories.document_repository.get_connection")
    def test_returns_record_with_string_ids(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row()

        result = asyncio.run(DocumentRepository().find_by_id(str(DOC_ID)))

        assert isinstance(result, DocumentRecord)
        assert result.id == str(DOC_ID)
        assert result.user_id == str(USER_ID)
        assert result.ocr_status == "queued"

    @patch("archive.database.repositories.document_repository.get_connection")
    def test_null_ocr_status_reads_as_none(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row(ocr_status=None, ocr_enabled=False)

        result = asyncio.run(DocumentRepository().find_by_id(str(DOC_ID)))

        assert result.ocr_status == "none"

    @patch("archive.database.repositories.document_repository.get_connection")
    def test_raises_document_not_found_when_missing(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        with pytest.raises(DocumentNotFoundError, match="Document missing not found"):
            asyncio.run(DocumentRepository().find_by_id("missing"))

    @patch("archive.database.repositories.document_repository.get_connection")
    def test_filters_soft_deleted_rows(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row()

        asyncio.run(DocumentRepository().find_by_id(str(DOC_ID)))

        sql, _params = mock_cursor.execute.call_args.args
        assert "deleted_at IS NULL" in sql


class TestFindByChecksum:
    @patch("archive.database.repositories.document_repository.get_connection")
    def test_queries_by_owner_and_checksum(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row()

        result = asyncio.run(DocumentRepository().find_by_checksum("u1", "f" * 64))

        assert result is not None
        sql, params = mock_cursor.execute.call_args.args
        assert "file_checksum" in sql
        assert "deleted_at IS NULL" in sql
        assert params == ("u1", "f" * 64)

    @patch("archive.database.repositories.document_repository.get_connection")
    def test_returns_none_without_match(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert asyncio.run(DocumentRepository().find_by_checksum("u1", "f" * 64)) is None


class TestInsert:
    def _new_document(self) -> NewDocument:
        return NewDocument(
            user_id=str(USER_ID),
            title="Lease agreement",
            file_name="lease.pdf",
            file_size=2048,
            file_type="application/pdf",
            file_url="http://files/u/1.pdf",
            storage_path=f"{USER_ID}/1.pdf",
            file_checksum="a" * 64,
            ocr_enabled=True,
            ocr_status="queued",
            ocr_started_at=None,
            public_link="lx1-abcdefghi",
        )

    @patch("archive.database.repositories.document_repository.get_connection")
    def test_inserts_with_zero_retry_count_and_commits(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row()

        result = asyncio.run(DocumentRepository().insert(self._new_document()))

        assert result.ocr_retry_count == 0
        sql, params = mock_cursor.execute.call_args.args
        assert "INSERT INTO documents" in sql
        assert "ocr_retry_count" in sql
        assert params[0] == str(USER_ID)
        mock_conn.commit.assert_awaited_once()


class TestAddTags:
    @patch("archive.database.repositories.document_repository.get_connection")
    def test_inserts_one_row_per_tag(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)

        asyncio.run(DocumentRepository().add_tags("d1", ["t1", "t2"]))

        sql, rows = mock_cursor.executemany.call_args.args
        assert "document_tags" in sql
        assert rows == [("d1", "t1"), ("d1", "t2")]
        mock_conn.commit.assert_awaited_once()

    @patch("archive.database.repositories.document_repository.get_connection")
    def test_no_tags_skips_database(self, mock_get_conn: MagicMock) -> None:
        asyncio.run(DocumentRepository().add_tags("d1", []))

        mock_get_conn.assert_not_called()


class TestFetchOcrSnapshot:
    @patch("archive.database.repositories.document_repository.get_connection")
    def test_maps_legacy_paused_to_queued(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {
            "id": DOC_ID,
            "ocr_enabled": True,
            "ocr_status": "paused",
            "ocr_error": None,
            "ocr_retry_count": 2,
            "has_text": False,
        }

        snapshot = asyncio.run(DocumentRepository().fetch_ocr_snapshot(str(DOC_ID)))

        assert snapshot.status is OcrStatus.QUEUED
        assert snapshot.retry_count == 2
        assert snapshot.document_id == str(DOC_ID)

    @patch("archive.database.repositories.document_repository.get_connection")
    def test_raises_when_missing(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        with pytest.raises(DocumentNotFoundError):
            asyncio.run(DocumentRepository().fetch_ocr_snapshot("gone"))


class TestGuardedUpdates:
    @patch("archive.database.repositories.document_repository.get_connection")
    def test_requeue_increments_retry_count_in_sql(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row(ocr_retry_count=1)

        asyncio.run(DocumentRepository().requeue("d1", Guard(["failed"], "queued")))

        sql, params = mock_cursor.execute.call_args.args
        assert "ocr_retry_count = ocr_retry_count + 1" in sql
        assert "ocr_status = ANY(%s)" in sql
        assert params == ("queued", "d1", ["failed"])

    @patch("archive.database.repositories.document_repository.get_connection")
    def test_guard_miss_returns_none(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        result = asyncio.run(DocumentRepository().mark_processing("d1", CLAIM))

        assert result is None

    @patch("archive.database.repositories.document_repository.get_connection")
    def test_disable_parks_failed_as_pending(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row(ocr_enabled=False, ocr_status="pending")

        asyncio.run(DocumentRepository().disable_ocr("d1", {"failed": "pending"}))

        sql, params = mock_cursor.execute.call_args.args
        assert "ocr_enabled = false" in sql
        assert "WHEN ocr_status = %s THEN %s" in sql
        assert params == ("failed", "pending", "d1")
        assert "ocr_text" not in sql

    @patch("archive.database.repositories.document_repository.get_connection")
    def test_mark_completed_stores_text(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row(ocr_status="completed", ocr_text="hi")

        result = asyncio.run(DocumentRepository().mark_completed("d1", "hi", COMPLETE))

        assert result is not None
        assert result.ocr_text == "hi"
        _sql, params = mock_cursor.execute.call_args.args
        assert params == ("completed", "hi", "d1", ["processing"])
        mock_conn.commit.assert_awaited_once()


class TestClaimNextQueued:
    def test_returns_none_when_queue_empty(self) -> None:
        mock_cursor = AsyncMock()
        mock_cursor.fetchone.return_value = None
        mock_conn = MagicMock()
        mock_conn.commit = AsyncMock()
        mock_conn.cursor.return_value.__aenter__.return_value = mock_cursor

        result = asyncio.run(DocumentRepository().claim_next_queued(mock_conn, CLAIM))

        assert result is None
        mock_conn.commit.assert_awaited_once()

    def test_claims_with_skip_locked_and_marks_processing(self) -> None:
        mock_cursor = AsyncMock()
        mock_cursor.fetchone.side_effect = [
            {"id": DOC_ID},
            _make_row(ocr_status="processing"),
        ]
        mock_conn = MagicMock()
        mock_conn.commit = AsyncMock()
        mock_conn.cursor.return_value.__aenter__.return_value = mock_cursor

        result = asyncio.run(
            DocumentRepository().claim_next_queued(
                mock_conn, Guard(["paused", "queued"], "processing")
            )
        )

        assert result is not None
        assert result.ocr_status == "processing"
        select_sql = mock_cursor.execute.call_args_list[0].args[0]
        update_sql, update_params = mock_cursor.execute.call_args_list[1].args
        assert "FOR UPDATE SKIP LOCKED" in select_sql
        assert "ocr_enabled = true" in select_sql
        assert "ocr_status = %s" in update_sql
        assert update_params == ("processing", DOC_ID)


class TestSoftDelete:
    @patch("archive.database.repositories.document_repository.get_connection")
    def test_calls_stored_procedure(self, mock_get_conn: MagicMock) -> None:
        mock_conn, _cursor = _mock_connection(mock_get_conn)

        asyncio.run(DocumentRepository().soft_delete("d1", "user-1"))

        mock_conn.execute.assert_awaited_once_with(
            "SELECT soft_delete_document(%s::uuid, %s::uuid)", ("d1", "user-1")
        )
        mock_conn.commit.assert_awaited_once()


class TestDisableArguments:
    def test_empty_parking_map_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            asyncio.run(DocumentRepository().disable_ocr("d1", {}))
