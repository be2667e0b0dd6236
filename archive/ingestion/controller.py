import secrets
import string
from collections.abc import Callable
from datetime import datetime, timezone

from archive.database.models import NewDocument
from archive.database.repositories.document_repository import DocumentRepository
from archive.ingestion.duplicates import DuplicateDetector
from archive.ingestion.exceptions import UploadFailedError
from archive.ingestion.hasher import compute_fingerprint
from archive.ingestion.models import DuplicateDecision, IngestionResult, UploadRequest
from archive.ingestion.validation import MAX_UPLOAD_BYTES, validate_upload
from archive.logging.logger import Log, LogCategory
from archive.notifications.notifier import UploadNotifier
from archive.ocr.states import OcrStatus
from archive.ocr.trigger import WorkerTrigger
from archive.storage.base import BaseObjectStorage, object_path
from archive.storage.exceptions import StorageError

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    digits = []
    while True:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
        if value == 0:
            return "".join(reversed(digits))


def public_link_id(now: datetime) -> str:
    """Share token: base36 epoch millis plus nine random base36 characters."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{_to_base36(int(now.timestamp() * 1000))}-{suffix}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionController:
    """Runs one upload end to end.

    Steps run strictly in order: validate, hash, duplicate check, blob upload,
    record creation, tags, worker trigger, notification. Only the first five
    can fail the upload; the rest are best-effort.
    """

    def __init__(
        self,
        document_repo: DocumentRepository,
        detector: DuplicateDetector,
        storage: BaseObjectStorage,
        trigger: WorkerTrigger,
        notifier: UploadNotifier,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._document_repo = document_repo
        self._detector = detector
        self._storage = storage
        self._trigger = trigger
        self._notifier = notifier
        self._max_upload_bytes = max_upload_bytes
        self._clock = clock

    async def ingest(
        self, request: UploadRequest, decide_duplicate: DuplicateDecision
    ) -> IngestionResult:
        """Ingest ``request``.

        ``decide_duplicate`` is awaited only when a duplicate exists; returning
        False cancels the upload with nothing written.

        Raises:
            UploadValidationError: if the file or title is rejected.
            UploadFailedError: if the blob upload or record creation fails.
        """
        validate_upload(request, self._max_upload_bytes)
        Log.info(
            f"Upload started: {request.file_name}",
            category=LogCategory.UPLOAD,
            user_id=request.owner_id,
            file_name=request.file_name,
            file_size=request.size,
            ocr_enabled=request.ocr_requested,
        )

        fingerprint = await compute_fingerprint(request.data)

        match = await self._detector.find(request.owner_id, fingerprint)
        if match is not None and not await decide_duplicate(match):
            Log.info(
                "Upload cancelled due to duplicate",
                category=LogCategory.UPLOAD,
                user_id=request.owner_id,
                document_id=match.document_id,
            )
            return IngestionResult(duplicate_of=match, cancelled=True)

        now = self._clock()
        path = object_path(request.owner_id, request.file_name, now)
        try:
            file_url = await self._storage.upload(path, request.data, request.content_type)
        except StorageError as exc:
            Log.error(
                f"Storage upload failed: {exc}",
                category=LogCategory.STORAGE,
                user_id=request.owner_id,
                storage_path=path,
            )
            raise UploadFailedError("Failed to upload document. Please try again.") from exc

        new_document = NewDocument(
            user_id=request.owner_id,
            title=request.title.strip(),
            file_name=request.file_name,
            file_size=request.size,
            file_type=request.content_type,
            file_url=file_url,
            storage_path=path,
            file_checksum=fingerprint,
            ocr_enabled=request.ocr_requested,
            ocr_status=(OcrStatus.QUEUED if request.ocr_requested else OcrStatus.NONE).value,
            ocr_started_at=now if request.ocr_requested else None,
            public_link=public_link_id(now),
            description=request.description,
            folder_id=request.folder_id,
        )
        try:
            document = await self._document_repo.insert(new_document)
        except Exception as exc:
            Log.error(
                f"Failed to insert document record: {exc}",
                category=LogCategory.DATABASE,
                user_id=request.owner_id,
                storage_path=path,
            )
            await self._discard_blob(path)
            raise UploadFailedError("Failed to upload document. Please try again.") from exc

        Log.info(
            f"Document {document.id} created",
            category=LogCategory.UPLOAD,
            document_id=document.id,
            user_id=request.owner_id,
        )

        await self._apply_tags(document.id, request.tag_ids)

        if request.ocr_requested:
            Log.info("OCR queued", category=LogCategory.OCR, document_id=document.id)
            await self._trigger.trigger(request.access_token)

        await self._notifier.notify_upload(
            request.access_token, document.id, document.title, request.file_name
        )
        return IngestionResult(document=document, duplicate_of=match)

    async def _apply_tags(self, document_id: str, tag_ids: list[str]) -> None:
        if not tag_ids:
            return
        try:
            await self._document_repo.add_tags(document_id, tag_ids)
        except Exception as exc:
            Log.error(
                f"Failed to apply tags: {exc}",
                category=LogCategory.TAG,
                document_id=document_id,
                tag_count=len(tag_ids),
            )
            return
        Log.info(
            f"Applied {len(tag_ids)} tags",
            category=LogCategory.TAG,
            document_id=document_id,
        )

    async def _discard_blob(self, path: str) -> None:
        try:
            await self._storage.delete(path)
        except StorageError as exc:
            Log.error(
                f"Failed to remove orphaned blob {path}: {exc}",
                category=LogCategory.STORAGE,
                storage_path=path,
            )
