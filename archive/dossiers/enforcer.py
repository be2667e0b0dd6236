from archive.database.connection import transaction
from archive.database.models import DocumentRecord, DossierLinkRecord
from archive.database.repositories.document_repository import DocumentRepository
from archive.database.repositories.dossier_repository import DossierRepository
from archive.dossiers.events import DocumentAdded, DocumentRemoved
from archive.dossiers.exceptions import (
    DocumentAlreadyLinkedError,
    DuplicateLinkError,
    LinkNotFoundError,
)
from archive.dossiers.timeline import Timeline
from archive.logging.logger import Log, LogCategory


class DossierLinkEnforcer:
    """Keeps every document in at most one dossier.

    The pre-check only saves a round trip; the unique constraint on
    dossier_documents.document_id decides. Both paths end in
    DocumentAlreadyLinkedError.
    """

    def __init__(
        self,
        dossier_repo: DossierRepository,
        document_repo: DocumentRepository,
        timeline: Timeline,
    ) -> None:
        self._dossier_repo = dossier_repo
        self._document_repo = document_repo
        self._timeline = timeline

    async def link(self, document_id: str, dossier_id: str, actor_id: str | None) -> DossierLinkRecord:
        """Link a document to a dossier and record ``document_added``.

        Raises:
            DocumentAlreadyLinkedError: if the document is linked to any dossier.
            DocumentNotFoundError: if the document does not exist.
        """
        existing = await self._dossier_repo.find_link_by_document(document_id)
        if existing is not None:
            Log.warning(
                f"Document {document_id} already linked to dossier {existing.dossier_id}",
                category=LogCategory.DOSSIER,
                document_id=document_id,
                dossier_id=dossier_id,
            )
            raise DocumentAlreadyLinkedError(
                document_id, existing.dossier_id, existing.dossier_title
            )

        document = await self._document_repo.find_by_id(document_id)
        try:
            async with transaction() as conn:
                link = await self._dossier_repo.insert_link(conn, dossier_id, document_id)
                await self._timeline.append(
                    conn,
                    dossier_id,
                    DocumentAdded(document_id=document_id, title=document.title),
                    actor_id,
                )
        except DuplicateLinkError as exc:
            winner = await self._dossier_repo.find_link_by_document(document_id)
            Log.warning(
                f"Lost link race for document {document_id}",
                category=LogCategory.DOSSIER,
                document_id=document_id,
                dossier_id=dossier_id,
            )
            raise DocumentAlreadyLinkedError(
                document_id,
                winner.dossier_id if winner else None,
                winner.dossier_title if winner else None,
            ) from exc

        Log.info(
            f"Linked document {document_id} to dossier {dossier_id}",
            category=LogCategory.DOSSIER,
            document_id=document_id,
            dossier_id=dossier_id,
        )
        return link

    async def unlink(self, link_id: str, actor_id: str | None) -> DossierLinkRecord:
        """Delete a link and record ``document_removed`` on its dossier.

        Raises:
            LinkNotFoundError: if the link row is already gone.
        """
        async with transaction() as conn:
            link = await self._dossier_repo.delete_link(conn, link_id)
            if link is None:
                raise LinkNotFoundError(f"Dossier link {link_id} not found")
            await self._timeline.append(
                conn,
                link.dossier_id,
                DocumentRemoved(document_id=link.document_id, title=link.document_title),
                actor_id,
            )

        Log.info(
            f"Unlinked document {link.document_id} from dossier {link.dossier_id}",
            category=LogCategory.DOSSIER,
            document_id=link.document_id,
            dossier_id=link.dossier_id,
        )
        return link

    async def current_link(self, document_id: str) -> DossierLinkRecord | None:
        return await self._dossier_repo.find_link_by_document(document_id)

    async def available_documents(self, owner_id: str) -> list[DocumentRecord]:
        """Owner documents not linked to any dossier.

        Picker filter only: it can be stale by the time the user confirms, and
        ``link`` re-checks against the store regardless.
        """
        documents = await self._document_repo.list_by_owner(owner_id)
        linked = await self._dossier_repo.linked_document_ids(owner_id)
        return [document for document in documents if document.id not in linked]
