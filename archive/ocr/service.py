from archive.database.models import DocumentRecord
from archive.database.repositories.document_repository import DocumentRepository
from archive.logging.logger import Log, LogCategory
from archive.ocr.exceptions import DocumentNotFoundError, InvalidTransitionError
from archive.ocr.models import OcrSnapshot
from archive.ocr.states import PARKED_ON_DISABLE, OcrEvent, guard, next_status
from archive.ocr.trigger import WorkerTrigger

DEFAULT_ERROR = "Unknown error"


def truncate_error(message: str, max_length: int) -> str:
    message = message.strip() or DEFAULT_ERROR
    if len(message) <= max_length:
        return message
    return message[: max_length - 3] + "..."


class OcrJobService:
    """Drives the OCR status of documents through the legal transitions.

    Every write is a guarded UPDATE, so two clients racing on the same
    document cannot both win. The retry counter is touched only by
    ``retry`` and ``requeue``, and only upwards.
    """

    def __init__(
        self,
        document_repo: DocumentRepository,
        trigger: WorkerTrigger | None = None,
        error_max_length: int = 500,
    ) -> None:
        self._document_repo = document_repo
        self._trigger = trigger
        self._error_max_length = error_max_length

    async def snapshot(self, document_id: str) -> OcrSnapshot:
        return await self._document_repo.fetch_ocr_snapshot(document_id)

    async def enable(self, document_id: str, access_token: str | None = None) -> DocumentRecord:
        record = await self._document_repo.enable_ocr(document_id, guard(OcrEvent.ENABLE).target)
        if record is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        Log.info(f"OCR enabled for document {document_id}", category=LogCategory.OCR, document_id=document_id)
        await self._fire_trigger(access_token)
        return record

    async def disable(self, document_id: str) -> DocumentRecord:
        """Turn OCR off. Extracted text stays; a failed job becomes 'pending'."""
        record = await self._document_repo.disable_ocr(
            document_id, {src.value: dst.value for src, dst in PARKED_ON_DISABLE.items()}
        )
        if record is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        Log.info(
            f"OCR disabled for document {document_id} (status {record.ocr_status})",
            category=LogCategory.OCR,
            document_id=document_id,
        )
        return record

    async def retry(self, document_id: str, access_token: str | None = None) -> DocumentRecord:
        """Re-queue a failed job and bump ``ocr_retry_count`` by one."""
        return await self._requeue(document_id, OcrEvent.RETRY, access_token)

    async def requeue(self, document_id: str, access_token: str | None = None) -> DocumentRecord:
        """Re-trigger a job that sits in 'queued'; counted like a retry."""
        return await self._requeue(document_id, OcrEvent.REQUEUE, access_token)

    async def mark_processing(self, document_id: str) -> DocumentRecord:
        record = await self._document_repo.mark_processing(document_id, guard(OcrEvent.START))
        return await self._require(record, document_id, OcrEvent.START)

    async def mark_completed(self, document_id: str, text: str) -> DocumentRecord:
        record = await self._document_repo.mark_completed(
            document_id, text, guard(OcrEvent.SUCCEED)
        )
        record = await self._require(record, document_id, OcrEvent.SUCCEED)
        Log.info(
            f"OCR completed for document {document_id} ({len(text)} chars)",
            category=LogCategory.OCR,
            document_id=document_id,
        )
        return record

    async def mark_failed(self, document_id: str, error: str) -> DocumentRecord:
        message = truncate_error(error, self._error_max_length)
        record = await self._document_repo.mark_failed(
            document_id, message, guard(OcrEvent.FAIL)
        )
        record = await self._require(record, document_id, OcrEvent.FAIL)
        Log.warning(
            f"OCR failed for document {document_id}: {message}",
            category=LogCategory.OCR,
            document_id=document_id,
        )
        return record

    async def _requeue(
        self, document_id: str, event: OcrEvent, access_token: str | None
    ) -> DocumentRecord:
        record = await self._document_repo.requeue(document_id, guard(event))
        record = await self._require(record, document_id, event)
        Log.info(
            f"OCR {event.value} for document {document_id} (retry count {record.ocr_retry_count})",
            category=LogCategory.OCR,
            document_id=document_id,
        )
        await self._fire_trigger(access_token)
        return record

    async def _require(
        self, record: DocumentRecord | None, document_id: str, event: OcrEvent
    ) -> DocumentRecord:
        if record is not None:
            return record
        # Guard missed: find out whether the row is gone or in the wrong status.
        current = await self._document_repo.fetch_ocr_snapshot(document_id)
        next_status(document_id, current.status, event)
        # Legal again by now: another writer moved the row in between.
        raise InvalidTransitionError(document_id, current.status.value, event.value)

    async def _fire_trigger(self, access_token: str | None) -> None:
        if self._trigger is not None:
            await self._trigger.trigger(access_token)
