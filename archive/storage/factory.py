from pathlib import Path

from archive.config.settings import Settings
from archive.storage.base import BaseObjectStorage
from archive.storage.http_storage import HttpObjectStorage
from archive.storage.local import LocalObjectStorage


class StorageFactory:
    """Creates the object storage backend named in settings."""

    BACKENDS = ("local", "http")

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStorage:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalObjectStorage(
                Path(settings.storage_files_root), settings.storage_public_base_url
            )
        if backend == "http":
            return HttpObjectStorage(
                settings.storage_url,
                settings.storage_bucket,
                api_key=settings.storage_api_key,
                timeout_seconds=settings.storage_timeout_seconds,
            )
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
