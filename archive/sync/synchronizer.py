"""Client-side view of OCR job status with deduplicated polling.

One ``StatusSynchronizer`` serves one view (page, session). It caches the
latest ``OcrSnapshot`` per document, collapses concurrent fetches of the same
document into one request, polls documents whose job is in flight, and applies
optimistic updates for user-initiated retries.

Every published snapshot carries the sequence number of the request (or local
update) that produced it. A response that started before a newer snapshot was
published is dropped, so a slow poll can never overwrite an optimistic update.
"""

import asyncio
import itertools
import time
from collections.abc import Awaitable, Callable
from types import TracebackType

from archive.logging.logger import Log, LogCategory
from archive.ocr.exceptions import DocumentNotFoundError
from archive.ocr.models import OcrSnapshot

Fetch = Callable[[str], Awaitable[OcrSnapshot]]
Listener = Callable[[OcrSnapshot], None]


class StatusSynchronizer:
    def __init__(
        self,
        fetch: Fetch,
        interval: float = 2.0,
        dedup_window: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._interval = interval
        self._dedup_window = dedup_window
        self._clock = clock
        self._seq = itertools.count()
        self._cache: dict[str, tuple[float, OcrSnapshot]] = {}
        self._published: dict[str, int] = {}
        self._local_update: dict[str, int] = {}
        self._inflight: dict[str, tuple[int, asyncio.Task[OcrSnapshot]]] = {}
        self._pollers: dict[str, asyncio.Task[None]] = {}
        self._listeners: dict[str, list[Listener]] = {}
        self._closed = False

    async def __aenter__(self) -> "StatusSynchronizer":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def snapshot(self, document_id: str) -> OcrSnapshot | None:
        """Latest locally known snapshot, without any I/O."""
        cached = self._cache.get(document_id)
        return cached[1] if cached else None

    def is_polling(self, document_id: str) -> bool:
        return document_id in self._pollers

    async def revalidate(self, document_id: str, force: bool = False) -> OcrSnapshot:
        """Fetch the current snapshot, sharing work with concurrent callers.

        Callers join a request already in flight. Without ``force`` a snapshot
        younger than the dedup window is served from cache. A forced call never
        joins a request that started before the last local update.
        """
        self._ensure_open()
        inflight = self._inflight.get(document_id)
        if inflight is not None:
            seq, task = inflight
            if not force or seq > self._local_update.get(document_id, -1):
                return await asyncio.shield(task)

        if not force:
            cached = self._cache.get(document_id)
            if cached is not None and self._clock() - cached[0] < self._dedup_window:
                return cached[1]

        return await asyncio.shield(self._start_fetch(document_id))

    async def refresh(self, document_id: str) -> OcrSnapshot:
        """Manual refresh: bypasses the dedup window."""
        return await self.revalidate(document_id, force=True)

    def watch(self, document_id: str, listener: Listener | None = None) -> bool:
        """Register ``listener`` and poll the document while its job is in flight.

        Returns True if a poll loop is running for the document afterwards.
        """
        self._ensure_open()
        if listener is not None:
            self._listeners.setdefault(document_id, []).append(listener)
        cached = self.snapshot(document_id)
        if cached is not None and cached.status.is_terminal:
            return False
        self._ensure_polling(document_id)
        return True

    async def unwatch(self, document_id: str) -> None:
        self._listeners.pop(document_id, None)
        poller = self._pollers.pop(document_id, None)
        if poller is not None:
            poller.cancel()
            await asyncio.gather(poller, return_exceptions=True)

    async def retry(
        self, document_id: str, action: Callable[[], Awaitable[object]]
    ) -> OcrSnapshot:
        """Show 'queued' immediately, run ``action``, then reconcile.

        If ``action`` raises, the previous snapshot is restored and the error
        propagates.
        """
        previous = self.snapshot(document_id)
        if previous is None:
            previous = await self.revalidate(document_id)
        self._apply_local(document_id, previous.as_queued())
        try:
            await action()
        except Exception:
            self._apply_local(document_id, previous)
            raise
        self._ensure_polling(document_id)
        return await self.revalidate(document_id, force=True)

    async def close(self) -> None:
        """Cancel every poll loop and pending request. Idempotent."""
        self._closed = True
        tasks: list[asyncio.Task] = list(self._pollers.values())
        tasks.extend(task for _, task in self._inflight.values())
        self._pollers.clear()
        self._inflight.clear()
        self._listeners.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("StatusSynchronizer is closed")

    def _start_fetch(self, document_id: str) -> asyncio.Task[OcrSnapshot]:
        seq = next(self._seq)
        task = asyncio.create_task(self._run_fetch(document_id, seq))
        self._inflight[document_id] = (seq, task)

        def _forget(done: asyncio.Task[OcrSnapshot]) -> None:
            current = self._inflight.get(document_id)
            if current is not None and current[1] is done:
                del self._inflight[document_id]

        task.add_done_callback(_forget)
        return task

    async def _run_fetch(self, document_id: str, seq: int) -> OcrSnapshot:
        fetched = await self._fetch(document_id)
        if self._publish(document_id, fetched, seq):
            return fetched
        # A newer snapshot was published while this request was out.
        return self._cache[document_id][1]

    def _apply_local(self, document_id: str, snapshot: OcrSnapshot) -> None:
        seq = next(self._seq)
        self._local_update[document_id] = seq
        self._publish(document_id, snapshot, seq)

    def _publish(self, document_id: str, snapshot: OcrSnapshot, seq: int) -> bool:
        if seq < self._published.get(document_id, -1):
            return False
        self._published[document_id] = seq
        self._cache[document_id] = (self._clock(), snapshot)
        for listener in list(self._listeners.get(document_id, ())):
            try:
                listener(snapshot)
            except Exception as exc:
                Log.error(
                    f"Status listener failed for document {document_id}: {exc}",
                    category=LogCategory.OCR,
                    document_id=document_id,
                )
        return True

    def _ensure_polling(self, document_id: str) -> None:
        if self._closed or document_id in self._pollers:
            return
        self._pollers[document_id] = asyncio.create_task(self._poll(document_id))

    async def _poll(self, document_id: str) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                if self._closed:
                    return
                try:
                    current = await self.revalidate(document_id, force=True)
                except DocumentNotFoundError:
                    Log.info(
                        f"Document {document_id} no longer exists, polling stopped",
                        category=LogCategory.OCR,
                        document_id=document_id,
                    )
                    return
                except Exception as exc:
                    Log.warning(
                        f"Status poll failed for document {document_id}: {exc}",
                        category=LogCategory.OCR,
                        document_id=document_id,
                    )
                    continue
                if current.status.is_terminal:
                    Log.debug(
                        f"Document {document_id} reached {current.status.value}, polling stopped",
                        category=LogCategory.OCR,
                        document_id=document_id,
                    )
                    return
        finally:
            if self._pollers.get(document_id) is asyncio.current_task():
                del self._pollers[document_id]
