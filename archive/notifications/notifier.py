import httpx

from archive.logging.logger import Log, LogCategory


class UploadNotifier:
    """Best-effort upload notification. Disabled when no URL is configured."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    async def notify_upload(
        self,
        access_token: str | None,
        document_id: str,
        title: str,
        file_name: str,
    ) -> bool:
        """Send an ``upload`` notification. Never raises."""
        if not self.enabled:
            return False

        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        body = {
            "type": "upload",
            "documentId": document_id,
            "documentTitle": title,
            "fileName": file_name,
        }
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            Log.warning(
                f"Failed to send upload notification for document {document_id}: {exc}",
                category=LogCategory.UPLOAD,
                document_id=document_id,
            )
            return False
        return True
