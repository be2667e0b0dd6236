from archive.database.connection import transaction
from archive.database.models import DossierRecord, FolderLinkRecord
from archive.database.repositories.dossier_repository import DossierRepository
from archive.dossiers.events import (
    AdminStateChanged,
    DossierCreated,
    DossierEvent,
    FolderAdded,
    FolderRemoved,
    Note,
    PhaseChanged,
    StatusChanged,
)
from archive.dossiers.exceptions import InvalidDossierValueError, LinkNotFoundError
from archive.dossiers.timeline import Timeline
from archive.logging.logger import Log, LogCategory

DOSSIER_TYPES = ("Client", "Project", "Request")
DOSSIER_STATUSES = ("open", "waiting", "done", "archived")
ADMIN_STATES = ("ok", "action_needed", "unpaid")


def _require(value: str, allowed: tuple[str, ...], what: str) -> None:
    if value not in allowed:
        raise InvalidDossierValueError(f"Invalid {what} '{value}'. Choose from: {list(allowed)}")


class DossierService:
    """Dossier-level edits. Each one writes exactly one timeline event in its own transaction."""

    def __init__(self, dossier_repo: DossierRepository, timeline: Timeline) -> None:
        self._dossier_repo = dossier_repo
        self._timeline = timeline

    async def create(
        self,
        user_id: str,
        title: str,
        dossier_type: str = "Client",
        phase: str | None = None,
    ) -> DossierRecord:
        title = title.strip()
        if not title:
            raise InvalidDossierValueError("Dossier title is required")
        _require(dossier_type, DOSSIER_TYPES, "dossier type")
        async with transaction() as conn:
            dossier = await self._dossier_repo.create(
                conn,
                user_id=user_id,
                title=title,
                dossier_type=dossier_type,
                status="open",
                admin_state="ok",
                phase=(phase or "").strip() or None,
            )
            await self._timeline.append(
                conn, dossier.id, DossierCreated(title=title, type=dossier_type), user_id
            )
        Log.info(f"Created dossier {dossier.id}", category=LogCategory.DOSSIER, dossier_id=dossier.id)
        return dossier

    async def update_status(self, dossier_id: str, status: str, actor_id: str | None) -> DossierEvent:
        _require(status, DOSSIER_STATUSES, "status")
        async with transaction() as conn:
            dossier = await self._dossier_repo.lock(conn, dossier_id)
            await self._dossier_repo.update_field(conn, dossier_id, "status", status)
            return await self._timeline.append(
                conn, dossier_id, StatusChanged(from_status=dossier.status, to_status=status), actor_id
            )

    async def update_phase(self, dossier_id: str, phase: str | None, actor_id: str | None) -> DossierEvent:
        new_phase = (phase or "").strip() or None
        async with transaction() as conn:
            dossier = await self._dossier_repo.lock(conn, dossier_id)
            await self._dossier_repo.update_field(conn, dossier_id, "phase", new_phase)
            return await self._timeline.append(
                conn, dossier_id, PhaseChanged(from_phase=dossier.phase, to_phase=new_phase), actor_id
            )

    async def update_admin_state(
        self, dossier_id: str, admin_state: str, actor_id: str | None
    ) -> DossierEvent:
        _require(admin_state, ADMIN_STATES, "admin state")
        async with transaction() as conn:
            dossier = await self._dossier_repo.lock(conn, dossier_id)
            await self._dossier_repo.update_field(conn, dossier_id, "admin_state", admin_state)
            return await self._timeline.append(
                conn,
                dossier_id,
                AdminStateChanged(from_state=dossier.admin_state, to_state=admin_state),
                actor_id,
            )

    async def add_note(self, dossier_id: str, body: str, actor_id: str | None) -> DossierEvent:
        body = body.strip()
        if not body:
            raise InvalidDossierValueError("Note body is required")
        async with transaction() as conn:
            await self._dossier_repo.lock(conn, dossier_id)
            return await self._timeline.append(conn, dossier_id, Note(body=body), actor_id)

    async def link_folder(
        self,
        dossier_id: str,
        folder_id: str,
        actor_id: str | None,
        folder_name: str | None = None,
    ) -> FolderLinkRecord:
        """Raises:
        FolderAlreadyLinkedError: if the folder is already linked to this dossier.
        """
        async with transaction() as conn:
            link = await self._dossier_repo.insert_folder_link(conn, dossier_id, folder_id)
            await self._timeline.append(
                conn, dossier_id, FolderAdded(folder_id=folder_id, name=folder_name), actor_id
            )
        return link

    async def unlink_folder(
        self,
        link_id: str,
        actor_id: str | None,
        folder_name: str | None = None,
    ) -> FolderLinkRecord:
        async with transaction() as conn:
            link = await self._dossier_repo.delete_folder_link(conn, link_id)
            if link is None:
                raise LinkNotFoundError(f"Folder link {link_id} not found")
            await self._timeline.append(
                conn,
                link.dossier_id,
                FolderRemoved(folder_id=link.folder_id, name=folder_name),
                actor_id,
            )
        return link
