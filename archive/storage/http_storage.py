import httpx

from archive.storage.base import BaseObjectStorage
from archive.storage.exceptions import ObjectNotFoundError, StorageError


class HttpObjectStorage(BaseObjectStorage):
    """Object storage behind a REST object API.

    Objects live at ``{base_url}/object/{bucket}/{path}``; public URLs at
    ``{base_url}/object/public/{bucket}/{path}``.
    """

    def __init__(
        self,
        base_url: str,
        bucket: str,
        api_key: str = "",
        timeout_seconds: float = 30,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("storage_url is required for the http storage backend")
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds, headers=headers)

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            response = await self._client.post(
                self._object_url(path),
                content=data,
                headers={"Content-Type": content_type, "x-upsert": "false"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StorageError(f"Upload of {path} failed: {exc}") from exc
        return f"{self._base_url}/object/public/{self._bucket}/{path}"

    async def read(self, path: str) -> bytes:
        try:
            response = await self._client.get(self._object_url(path))
        except httpx.HTTPError as exc:
            raise StorageError(f"Download of {path} failed: {exc}") from exc
        if response.status_code == 404:
            raise ObjectNotFoundError(f"Object not found: {path}")
        if not response.is_success:
            raise StorageError(f"Download of {path} returned {response.status_code}")
        return response.content

    async def delete(self, path: str) -> None:
        try:
            response = await self._client.delete(self._object_url(path))
        except httpx.HTTPError as exc:
            raise StorageError(f"Delete of {path} failed: {exc}") from exc
        if response.status_code != 404 and not response.is_success:
            raise StorageError(f"Delete of {path} returned {response.status_code}")

    async def aclose(self) -> None:
        """Close the HTTP client if this storage created it."""
        if self._owns_client:
            await self._client.aclose()

    def _object_url(self, path: str) -> str:
        return f"{self._base_url}/object/{self._bucket}/{path}"
