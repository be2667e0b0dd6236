from abc import ABC, abstractmethod
from datetime import datetime, timezone


def object_path(owner_id: str, file_name: str, now: datetime | None = None) -> str:
    """Build the object path for an upload: {owner_id}/{epoch_ms}.{ext}"""
    moment = now if now is not None else datetime.now(timezone.utc)
    extension = file_name.rsplit(".", 1)[-1] if "." in file_name else "bin"
    return f"{owner_id}/{int(moment.timestamp() * 1000)}.{extension}"


class BaseObjectStorage(ABC):
    """Contract for blob storage backends."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``path`` without overwriting.

        Returns:
            The public URL of the stored object.

        Raises:
            StorageError: if the object could not be stored.
        """

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Raises:
        ObjectNotFoundError: if nothing is stored under ``path``.
        StorageError: for any other failure.
        """

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove an object. Deleting a missing object is not an error."""

    async def aclose(self) -> None:
        """Release backend resources. Nothing to release by default."""
