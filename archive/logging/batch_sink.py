"""Batched delivery of log records to a remote log endpoint.

Records are buffered in a bounded queue and posted in batches by a background
asyncio task, either every ``flush_interval`` seconds or as soon as the queue
holds ``max_queue_size`` entries. The sink is attached to ``Log`` explicitly
and has an explicit lifecycle: ``start()`` -> ``flush()``* -> ``stop()``.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

_SINK_LOGGER_NAME = "archive.log_sink"
_sink_logger = logging.getLogger(_SINK_LOGGER_NAME)

# Attributes every LogRecord has; anything else came in through `extra`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class BatchLogSink(logging.Handler):
    """logging.Handler that buffers entries and flushes them over HTTP."""

    def __init__(
        self,
        endpoint: str,
        *,
        flush_interval: float = 5.0,
        max_queue_size: int = 100,
        client: httpx.AsyncClient | None = None,
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level)
        if max_queue_size < 1:
            raise ValueError("max_queue_size must be at least 1")
        self._endpoint = endpoint
        self._flush_interval = flush_interval
        self._max_queue_size = max_queue_size
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=max_queue_size * 2)
        self._client = client
        self._owns_client = client is None
        self._wake = asyncio.Event()
        self._stop_requested = asyncio.Event()
        self._flush_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self.dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        """Start the background flusher. Idempotent."""
        if self._task is not None:
            return
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=10.0)
        self._stop_requested.clear()
        self._task = asyncio.create_task(self._run(), name="log-sink-flusher")

    async def stop(self) -> None:
        """Let the flusher finish its current post and exit, then deliver the rest."""
        task, self._task = self._task, None
        if task is not None:
            self._stop_requested.set()
            self._wake.set()
            await task
        await self.flush()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def emit(self, record: logging.LogRecord) -> None:
        if record.name == _SINK_LOGGER_NAME:
            return
        try:
            entry = self._to_entry(record)
        except Exception:
            self.handleError(record)
            return
        self._enqueue(entry)
        if self._queue.qsize() >= self._max_queue_size:
            self._wake.set()

    async def flush(self) -> None:  # type: ignore[override]
        """Post every buffered entry as one batch."""
        async with self._flush_lock:
            batch = self._drain()
            if not batch:
                return
            if self._client is None:
                self._requeue(batch)
                return
            try:
                response = await self._client.post(self._endpoint, json={"logs": batch})
                response.raise_for_status()
            except httpx.HTTPError as exc:
                _sink_logger.warning(f"Failed to flush {len(batch)} log entries: {exc}")
                self._requeue(batch)
            except asyncio.CancelledError:
                self._requeue(batch)
                raise

    async def _run(self) -> None:
        while not self._stop_requested.is_set():
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._flush_interval)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()
            await self.flush()

    def _enqueue(self, entry: dict[str, Any]) -> None:
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(entry)

    def _drain(self) -> list[dict[str, Any]]:
        batch: list[dict[str, Any]] = []
        while not self._queue.empty():
            batch.append(self._queue.get_nowait())
        return batch

    def _requeue(self, batch: list[dict[str, Any]]) -> None:
        # Failed batches go back only while the queue stays under the soft limit.
        if self._queue.qsize() >= self._max_queue_size:
            self.dropped += len(batch)
            return
        pending = self._drain()
        for entry in batch + pending:
            self._enqueue(entry)

    @staticmethod
    def _to_entry(record: logging.LogRecord) -> dict[str, Any]:
        context = {
            key: value if isinstance(value, (str, int, float, bool, type(None))) else str(value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
        }
        category = getattr(record, "category", "SYSTEM")
        context.pop("category", None)
        category = getattr(category, "value", category)
        return {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "category": category,
            "message": record.getMessage(),
            "metadata": context,
        }
