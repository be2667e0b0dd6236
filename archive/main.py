import asyncio

from archive.config.settings import Settings
from archive.database.connection import close_pool, init_pool
from archive.logging.batch_sink import BatchLogSink
from archive.logging.logger import Log, LogCategory
from archive.service import build_service


async def main() -> None:
    """Entry point: logging -> pool -> dependencies -> extraction worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)

    sink: BatchLogSink | None = None
    if settings.log_sink_url:
        sink = BatchLogSink(
            settings.log_sink_url,
            flush_interval=settings.log_flush_interval_seconds,
            max_queue_size=settings.log_queue_max_size,
        )
        Log.attach_sink(sink)
        await sink.start()

    service = build_service(settings)
    await init_pool(settings)
    try:
        await service.worker().run()
    finally:
        await service.aclose()
        await close_pool()
        if sink is not None:
            Log.detach_sink(sink)
            await sink.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        Log.info("Worker shutting down gracefully", category=LogCategory.SYSTEM)
