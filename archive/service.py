from dataclasses import dataclass

from archive.config.settings import Settings
from archive.database.repositories.document_repository import DocumentRepository
from archive.database.repositories.dossier_repository import DossierRepository
from archive.database.repositories.event_repository import EventRepository
from archive.dossiers.enforcer import DossierLinkEnforcer
from archive.dossiers.service import DossierService
from archive.dossiers.timeline import Timeline
from archive.extraction.factory import ExtractorFactory
from archive.ingestion.controller import IngestionController
from archive.ingestion.duplicates import DuplicateDetector
from archive.logging.logger import Log, LogCategory
from archive.notifications.notifier import UploadNotifier
from archive.ocr.service import OcrJobService
from archive.ocr.trigger import WorkerTrigger
from archive.storage.base import BaseObjectStorage
from archive.storage.factory import StorageFactory
from archive.sync.synchronizer import StatusSynchronizer
from archive.worker.job_runner import JobRunner
from archive.worker.worker import Worker


@dataclass
class ArchiveService:
    """Composed archive core. Build it with ``build_service``."""

    settings: Settings
    document_repo: DocumentRepository
    storage: BaseObjectStorage
    ingestion: IngestionController
    ocr: OcrJobService
    enforcer: DossierLinkEnforcer
    dossiers: DossierService
    timeline: Timeline

    async def delete_document(self, document_id: str, actor_id: str | None = None) -> None:
        """Soft-delete a document; it drops out of every read, dedup included."""
        await self.document_repo.soft_delete(document_id, actor_id)
        Log.info(
            f"Document {document_id} deleted",
            category=LogCategory.USER_ACTION,
            document_id=document_id,
        )

    def status_synchronizer(self) -> StatusSynchronizer:
        """New synchronizer for one view. Use it as an async context manager."""
        return StatusSynchronizer(
            self.ocr.snapshot,
            interval=self.settings.status_poll_interval_seconds,
            dedup_window=self.settings.status_dedup_window_seconds,
        )

    def worker(self) -> Worker:
        runner = JobRunner(self.storage, ExtractorFactory.create(self.settings), self.ocr)
        return Worker(self.document_repo, runner, self.settings)

    async def aclose(self) -> None:
        await self.storage.aclose()


def build_service(settings: Settings) -> ArchiveService:
    """Wire repositories, storage and HTTP collaborators from settings."""
    document_repo = DocumentRepository()
    dossier_repo = DossierRepository()
    timeline = Timeline(EventRepository())
    storage = StorageFactory.create(settings)
    trigger = WorkerTrigger(
        settings.ocr_trigger_url,
        settings.ocr_trigger_token,
        timeout_seconds=settings.ocr_trigger_timeout_seconds,
    )
    notifier = UploadNotifier(
        settings.notification_url, timeout_seconds=settings.notification_timeout_seconds
    )
    return ArchiveService(
        settings=settings,
        document_repo=document_repo,
        storage=storage,
        ingestion=IngestionController(
            document_repo,
            DuplicateDetector(document_repo),
            storage,
            trigger,
            notifier,
            max_upload_bytes=settings.max_upload_bytes,
        ),
        ocr=OcrJobService(document_repo, trigger, settings.ocr_error_max_length),
        enforcer=DossierLinkEnforcer(dossier_repo, document_repo, timeline),
        dossiers=DossierService(dossier_repo, timeline),
        timeline=timeline,
    )
