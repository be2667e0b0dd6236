import asyncio

from archive.database.models import DocumentRecord
from archive.extraction.exceptions import ExtractionError
from archive.extraction.factory import ExtractorRouter
from archive.logging.logger import Log, LogCategory
from archive.ocr.exceptions import OcrError
from archive.ocr.service import OcrJobService
from archive.storage.base import BaseObjectStorage


class JobRunner:
    """Run one claimed OCR job and record its outcome.

    There is no automatic retry: a failure leaves the document in 'failed'
    until the user retries it. ``run`` never raises; when even the failure
    cannot be recorded the document stays in 'processing' and is logged.
    """

    def __init__(
        self,
        storage: BaseObjectStorage,
        extractors: ExtractorRouter,
        ocr_service: OcrJobService,
    ) -> None:
        self._storage = storage
        self._extractors = extractors
        self._ocr_service = ocr_service

    async def run(self, document: DocumentRecord) -> None:
        """Extract text for a document already moved to 'processing'."""
        Log.info(
            f"Running OCR job for document {document.id} (retry {document.ocr_retry_count})",
            category=LogCategory.OCR,
            document_id=document.id,
        )
        try:
            text = await self._extract(document)
        except Exception as exc:
            await self._handle_failure(document, exc)
            return

        try:
            await self._ocr_service.mark_completed(document.id, text)
        except OcrError as exc:
            # Another writer moved the document out of 'processing'.
            Log.warning(
                f"Could not record OCR result for document {document.id}: {exc}",
                category=LogCategory.OCR,
                document_id=document.id,
            )
        except Exception as exc:
            await self._handle_failure(document, exc)

    async def _extract(self, document: DocumentRecord) -> str:
        extractor = self._extractors.for_mime(document.file_type)
        data = await self._storage.read(document.storage_path)
        text = await asyncio.to_thread(extractor.extract, data)
        if not text:
            raise ExtractionError("No text could be extracted from the document")
        return text

    async def _handle_failure(self, document: DocumentRecord, exc: Exception) -> None:
        Log.error(
            f"OCR job for document {document.id} failed: {exc}",
            category=LogCategory.OCR,
            document_id=document.id,
        )
        try:
            await self._ocr_service.mark_failed(document.id, str(exc))
        except Exception as mark_exc:
            Log.warning(
                f"Could not mark document {document.id} as failed: {mark_exc}",
                category=LogCategory.OCR,
                document_id=document.id,
            )
