from archive.database.repositories.document_repository import DocumentRepository
from archive.ingestion.models import DuplicateMatch
from archive.logging.logger import Log, LogCategory


class DuplicateDetector:
    """Looks up an existing document of the same owner with the same fingerprint."""

    def __init__(self, document_repo: DocumentRepository) -> None:
        self._document_repo = document_repo

    async def find(self, owner_id: str, fingerprint: str) -> DuplicateMatch | None:
        """Return the match, or None.

        A lookup failure is logged and reported as "no duplicate" so it never
        blocks an upload.
        """
        try:
            existing = await self._document_repo.find_by_checksum(owner_id, fingerprint)
        except Exception as exc:
            Log.error(
                f"Duplicate lookup failed, continuing without it: {exc}",
                category=LogCategory.UPLOAD,
                user_id=owner_id,
            )
            return None

        if existing is None:
            return None
        Log.info(
            f"Duplicate of document {existing.id} detected",
            category=LogCategory.UPLOAD,
            document_id=existing.id,
            user_id=owner_id,
        )
        return DuplicateMatch(
            document_id=existing.id, title=existing.title, file_name=existing.file_name
        )
