import asyncio
import os
import uuid
from collections.abc import Awaitable, Callable, Generator
from pathlib import Path
from typing import Any, TypeVar

import psycopg
import pytest

from archive.config.settings import Settings
from archive.database.connection import close_pool, conninfo_from, init_pool
from archive.database.models import DocumentRecord, NewDocument
from archive.database.repositories.document_repository import DocumentRepository

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "sql" / "schema.sql"

T = TypeVar("T")


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "archive_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def db_conn(test_settings: Settings) -> Generator[psycopg.Connection[Any], None, None]:
    """Synchronous connection for seeding and inspecting rows. Applies the schema once."""
    try:
        conn = psycopg.connect(conninfo_from(test_settings), autocommit=True)
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run integration tests")
    conn.execute(SCHEMA_PATH.read_text())
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def run_with_pool(
    test_settings: Settings, db_conn: psycopg.Connection[Any]
) -> Callable[[Callable[[], Awaitable[T]]], T]:
    """Run a coroutine factory on a fresh event loop with the pool open."""

    def _run(factory: Callable[[], Awaitable[T]]) -> T:
        async def _wrapped() -> T:
            await init_pool(test_settings)
            try:
                return await factory()
            finally:
                await close_pool()

        return asyncio.run(_wrapped())

    return _run


@pytest.fixture
def owner_id(db_conn: psycopg.Connection[Any]) -> Generator[str, None, None]:
    """A fresh owner; every document and dossier they own is removed afterwards."""
    user_id = str(uuid.uuid4())
    yield user_id
    db_conn.execute("DELETE FROM dossiers WHERE user_id = %s", (user_id,))
    db_conn.execute("DELETE FROM documents WHERE user_id = %s", (user_id,))


def new_document(owner: str, **overrides: Any) -> NewDocument:
    suffix = uuid.uuid4().hex[:8]
    values: dict[str, Any] = {
        "user_id": owner,
        "title": "Lease agreement",
        "file_name": "lease.pdf",
        "file_size": 2048,
        "file_type": "application/pdf",
        "file_url": f"http://localhost:8000/files/{owner}/{suffix}.pdf",
        "storage_path": f"{owner}/{suffix}.pdf",
        "file_checksum": "b" * 64,
        "ocr_enabled": False,
        "ocr_status": "none",
        "ocr_started_at": None,
        "public_link": f"link-{suffix}",
    }
    values.update(overrides)
    return NewDocument(**values)


@pytest.fixture
def seed_document(
    run_with_pool: Callable[[Callable[[], Awaitable[Any]]], Any], owner_id: str
) -> Callable[..., DocumentRecord]:
    def _seed(**overrides: Any) -> DocumentRecord:
        document = new_document(owner_id, **overrides)
        return run_with_pool(lambda: DocumentRepository().insert(document))

    return _seed
