import asyncio

from archive.config.settings import Settings
from archive.database.connection import get_connection
from archive.database.models import DocumentRecord
from archive.database.repositories.document_repository import DocumentRepository
from archive.logging.logger import Log, LogCategory
from archive.ocr.states import OcrEvent, guard
from archive.worker.job_runner import JobRunner

_CLAIM = guard(OcrEvent.START)


class Worker:
    """Poll loop: claim a batch -> run it with bounded parallelism -> sleep when idle."""

    def __init__(
        self,
        document_repo: DocumentRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._document_repo = document_repo
        self._job_runner = job_runner
        self._settings = settings
        self._stopping = asyncio.Event()

    def stop(self) -> None:
        """Ask the loop to exit after the current batch."""
        self._stopping.set()

    async def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until ``stop()`` is called.

        If max_jobs is set, stop after processing that many jobs (for testing).
        """
        Log.info("Worker started, polling for queued documents", category=LogCategory.SYSTEM)
        jobs_done = 0
        while not self._stopping.is_set():
            if max_jobs is not None and jobs_done >= max_jobs:
                break
            limit = self._settings.worker_batch_size
            if max_jobs is not None:
                limit = min(limit, max_jobs - jobs_done)
            batch = await self._claim_batch(limit)
            if batch:
                await self._run_batch(batch)
                jobs_done += len(batch)
            else:
                Log.debug("No queued documents, sleeping", category=LogCategory.SYSTEM)
                await self._idle()
        Log.info("Worker stopped", category=LogCategory.SYSTEM)

    async def _idle(self) -> None:
        try:
            await asyncio.wait_for(
                self._stopping.wait(), timeout=self._settings.job_poll_interval_seconds
            )
        except asyncio.TimeoutError:
            pass

    async def _claim_batch(self, limit: int) -> list[DocumentRecord]:
        batch: list[DocumentRecord] = []
        while len(batch) < limit and not self._stopping.is_set():
            document = await self._try_claim_job()
            if document is None:
                break
            batch.append(document)
        return batch

    async def _run_batch(self, batch: list[DocumentRecord]) -> None:
        slots = asyncio.Semaphore(max(1, self._settings.worker_max_parallel))

        async def _run_in_slot(document: DocumentRecord) -> None:
            async with slots:
                await self._run_job(document)

        Log.debug(f"Running batch of {len(batch)} OCR jobs", category=LogCategory.OCR)
        await asyncio.gather(*(_run_in_slot(document) for document in batch))

    async def _run_job(self, document: DocumentRecord) -> None:
        try:
            await self._job_runner.run(document)
        except Exception as exc:
            Log.error(
                f"OCR job for document {document.id} crashed, continuing: {exc}",
                category=LogCategory.OCR,
                document_id=document.id,
            )

    async def _try_claim_job(self) -> DocumentRecord | None:
        """Attempt to claim the next queued document. Gracefully handle DB errors."""
        try:
            async with get_connection() as conn:
                return await self._document_repo.claim_next_queued(conn, _CLAIM)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}", category=LogCategory.DATABASE)
            return None
