"""Keep the event cache in step with writes made by other consumers.

Every change pushed for the ``events`` table triggers a full cache reload
rather than patching the cache with the pushed row. Changes the manager
already holds (its own writes) are skipped.
"""

from __future__ import annotations

import asyncio
import logging

from ecomap.services.event_data import EVENTS_TABLE, EventDataManager
from ecomap.store import Record, RecordStore, Subscription

logger = logging.getLogger(__name__)

# Strong references to in-flight refresh tasks
_pending: set[asyncio.Task] = set()


def watch_events(manager: EventDataManager, store: RecordStore) -> Subscription:
    async def reconcile(change: str, record: Record) -> None:
        # Runs after the writing coroutine has updated the cache
        if manager.reflects(change, record):
            logger.debug("events %s for %s already cached", change, record.get("id"))
            return
        logger.debug("events %s for %s, refreshing", change, record.get("id"))
        await manager.refresh()

    def on_change(change: str, record: Record) -> None:
        task = asyncio.get_running_loop().create_task(reconcile(change, dict(record)))
        _pending.add(task)
        task.add_done_callback(_pending.discard)

    return store.subscribe(EVENTS_TABLE, on_change)
