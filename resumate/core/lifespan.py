import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from resumate.analytics.db import init_db, purge_old_records
from resumate.core.object_store import get_object_store
from resumate.core.record_store import get_record_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    get_record_store().init()
    get_object_store().root.mkdir(parents=True, exist_ok=True)
    init_db()

    stop_event = asyncio.Event()

    async def periodic_purge() -> None:
        while not stop_event.is_set():
            try:
                deleted = purge_old_records()
                if any(deleted.values()):
                    logger.info("analytics_retention_purge deleted=%s", deleted)
            except Exception as exc:  # pragma: no cover - purge must not stop the app
                logger.warning("analytics_retention_purge_failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=3600)
            except asyncio.TimeoutError:
                continue

    purge_task = asyncio.create_task(periodic_purge())
    yield
    stop_event.set()
    if not purge_task.done():
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
    get_record_store().close()
