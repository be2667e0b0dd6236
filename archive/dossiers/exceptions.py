class DossierError(Exception):
    """Base exception for dossier linking and timeline errors."""


class InvalidDossierValueError(DossierError):
    """Raised for an empty title/note or a status, type or admin state outside the allowed set."""


class DossierNotFoundError(DossierError):
    """Raised when a dossier cannot be found."""


class LinkNotFoundError(DossierError):
    """Raised when a dossier link row is already gone."""


class DuplicateLinkError(DossierError):
    """Raised by the repository when the store rejects a link as a uniqueness violation."""


class DocumentAlreadyLinkedError(DossierError):
    """A document can belong to one dossier only. Not retryable."""

    def __init__(
        self,
        document_id: str,
        dossier_id: str | None = None,
        dossier_title: str | None = None,
    ) -> None:
        self.document_id = document_id
        self.dossier_id = dossier_id
        self.dossier_title = dossier_title
        target = f'"{dossier_title}"' if dossier_title else "another dossier"
        super().__init__(
            f"This document is already linked to {target}. "
            "Each document can only be linked to one dossier."
        )


class FolderAlreadyLinkedError(DossierError):
    """Raised when a folder is already linked to the same dossier."""

    def __init__(self, folder_id: str, dossier_id: str) -> None:
        self.folder_id = folder_id
        self.dossier_id = dossier_id
        super().__init__(f"Folder {folder_id} is already linked to dossier {dossier_id}")
