from __future__ import annotations

import logging
from datetime import datetime
from uuid import uuid4

from ecomap.exceptions import NotFoundError
from ecomap.services.event_data import EventDataManager
from ecomap.store import Record, RecordStore

logger = logging.getLogger(__name__)

PARTICIPANTS_TABLE = "event_participants"

DEFAULT_PREFERENCES = {"email": True, "push": False}


async def join_event(
    manager: EventDataManager,
    store: RecordStore,
    name: str,
    user_id: str,
    preferences: dict | None = None,
) -> Record:
    """Sign ``user_id`` up for the event called ``name``.

    The event gets a stored id first if it only exists in the seed data.
    Joining an event twice returns the existing participation.
    """
    event_id = await manager.ensure_event_exists(name, user_id)
    row = await store.upsert(
        PARTICIPANTS_TABLE,
        {
            "id": str(uuid4()),
            "event_id": event_id,
            "user_id": user_id,
            "notification_preferences": preferences or dict(DEFAULT_PREFERENCES),
            "created_at": datetime.utcnow(),
        },
        conflict_keys=["event_id", "user_id"],
    )
    logger.info("User %s joined event %s", user_id, event_id)
    return row


async def leave_event(store: RecordStore, event_id: str, user_id: str) -> None:
    removed = await store.delete(PARTICIPANTS_TABLE, {"event_id": event_id, "user_id": user_id})
    if not removed:
        raise NotFoundError(f"User {user_id} is not participating in event {event_id}")


async def participant_count(store: RecordStore, event_id: str) -> int:
    return len(await store.select(PARTICIPANTS_TABLE, {"event_id": event_id}))


async def list_participations(store: RecordStore, user_id: str) -> list[Record]:
    """Participations for a user, newest first."""
    return await store.select(PARTICIPANTS_TABLE, {"user_id": user_id}, order="-created_at")


async def update_notification_preferences(
    store: RecordStore, participation_id: str, preferences: dict, user_id: str | None = None
) -> Record:
    filters = {"id": participation_id}
    if user_id is not None:
        filters["user_id"] = user_id
    row = await store.update(PARTICIPANTS_TABLE, {"notification_preferences": preferences}, filters)
    if row is None:
        raise NotFoundError(f"Participation {participation_id} not found")
    return row
