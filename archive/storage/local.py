import asyncio
from pathlib import Path

from archive.storage.base import BaseObjectStorage
from archive.storage.exceptions import ObjectNotFoundError, StorageError


class LocalObjectStorage(BaseObjectStorage):
    """Stores objects as files under a root directory."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None, public_base_url: str = "") -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._public_base_url = public_base_url.rstrip("/")

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve_path(path)
        try:
            await asyncio.to_thread(self._write_new, target, data)
        except FileExistsError as exc:
            raise StorageError(f"Object already exists: {path}") from exc
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc
        return f"{self._public_base_url}/{path}"

    async def read(self, path: str) -> bytes:
        target = self._resolve_path(path)
        if not target.exists():
            raise ObjectNotFoundError(f"File not found: {target}")
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    async def delete(self, path: str) -> None:
        target = self._resolve_path(path)
        try:
            await asyncio.to_thread(target.unlink, True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {path}: {exc}") from exc

    def _resolve_path(self, path: str) -> Path:
        root = self._files_root.resolve()
        target = (root / path).resolve()
        if root not in target.parents:
            raise StorageError(f"Path escapes storage root: {path}")
        return target

    @staticmethod
    def _write_new(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("xb") as fh:
            fh.write(data)
