import httpx

from archive.logging.logger import Log, LogCategory


class WorkerTrigger:
    """Nudges the remote extraction worker to sweep queued documents.

    Fire-and-forget: the worker also polls on its own, so a lost trigger only
    delays processing.
    """

    def __init__(
        self,
        url: str,
        token: str = "",
        timeout_seconds: float = 10,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._token = token
        self._timeout = timeout_seconds
        self._client = client

    async def trigger(self, access_token: str | None = None) -> bool:
        """POST an empty JSON body to the worker endpoint.

        Returns True on a 2xx response. Never raises.
        """
        if not self._url:
            Log.debug("OCR trigger URL not configured, skipping", category=LogCategory.OCR)
            return False

        headers = {"Content-Type": "application/json"}
        credential = access_token or self._token
        if credential:
            headers["Authorization"] = f"Bearer {credential}"

        try:
            if self._client is not None:
                response = await self._client.post(self._url, json={}, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json={}, headers=headers)
        except httpx.HTTPError as exc:
            Log.error(f"Failed to trigger OCR worker: {exc}", category=LogCategory.OCR)
            return False

        if not response.is_success:
            Log.error(
                f"OCR worker trigger returned {response.status_code}",
                category=LogCategory.OCR,
                status_code=response.status_code,
            )
            return False

        Log.info("OCR worker triggered", category=LogCategory.OCR)
        return True
