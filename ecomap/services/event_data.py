"""Event cache: the merged view of seed features and stored event overrides.

The seed collection is the map's immutable baseline. Administrators edit
events through override rows in the ``events`` table; each override is
linked to its seed feature by ``seed_key`` (the seed name copied at
creation time), so an override's title can change without losing the link.
Rows with no seed link are admin-created events and are drawn on the map
as generated features while active.

One ``EventDataManager`` is built by the application at startup and shared
by every consumer. Consumers call ``add_listener`` to be told when the
merged view may have changed and re-read it with ``get_merged_event_data``.
"""

from __future__ import annotations

import copy
import logging
from datetime import date, datetime
from typing import Any, Callable
from urllib.parse import unquote
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from ecomap.config import settings
from ecomap.exceptions import NotFoundError, PersistenceError, ValidationError
from ecomap.metrics import (
    CACHE_LISTENERS,
    CACHE_OVERRIDES,
    CACHE_REFRESH_TOTAL,
    EVENT_WRITES_TOTAL,
    LISTENER_ERRORS_TOTAL,
)
from ecomap.schemas import EventCreate, EventRecord, EventUpdate
from ecomap.seed_data import get_seed_collection
from ecomap.services.geo import (
    coords_for_location,
    event_type_label,
    split_time_label,
    square_polygon,
    time_label,
)
from ecomap.store import RecordStore

logger = logging.getLogger(__name__)

EVENTS_TABLE = "events"

Listener = Callable[[], None]

# Override attribute -> merged feature property, copied when not None
_OVERRIDE_PROPERTIES = (
    ("id", "id"),
    ("title", "name"),
    ("description", "description"),
    ("event_type", "eventType"),
    ("location", "location"),
    ("address", "address"),
    ("organizer_name", "organizer_name"),
    ("organizer_contact", "organizer_contact"),
    ("status", "status"),
    ("requirements", "requirements"),
    ("what_to_bring", "what_to_bring"),
    ("max_participants", "max_participants"),
    ("current_participants", "current_participants"),
)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        logger.warning("Ignoring unparsable seed date %r", value)
        return None


class EventDataManager:
    def __init__(self, store: RecordStore, seeds: dict | None = None):
        self._store = store
        self._seeds = seeds if seeds is not None else get_seed_collection()
        self._seed_names = {f["properties"]["name"] for f in self._seeds["features"]}
        self._overrides: dict[str, EventRecord] = {}  # seed name -> override
        self._admin_events: dict[str, EventRecord] = {}  # id -> admin-created event
        self._by_id: dict[str, EventRecord] = {}
        self._listeners: dict[Listener, None] = {}  # insertion-ordered set
        self.loaded = False
        self.last_refreshed_at: datetime | None = None

    @classmethod
    async def create(cls, store: RecordStore, seeds: dict | None = None) -> "EventDataManager":
        """Build a manager and wait for its first load.

        A failed first load still returns a usable manager serving the seed
        data; ``loaded`` stays False until a refresh succeeds.
        """
        manager = cls(store, seeds)
        await manager.refresh()
        return manager

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_merged_event_data(self) -> dict:
        features = []
        for feature in self._seeds["features"]:
            override = self._overrides.get(feature["properties"]["name"])
            if override is None:
                features.append(copy.deepcopy(feature))
            else:
                features.append(self._merge(feature, override))

        for record in self._admin_events.values():
            if record.status == "active":
                features.append(self._admin_feature(record))

        merged = {key: value for key, value in self._seeds.items() if key != "features"}
        merged["features"] = features
        return merged

    def get_event_by_name(self, name: str) -> dict | None:
        """Return the merged feature whose current or original name is ``name``."""
        name = unquote(name)
        for feature in self.get_merged_event_data()["features"]:
            props = feature["properties"]
            if props.get("name") == name or props.get("original_name") == name:
                return feature
        return None

    def get_event_by_id(self, event_id: str) -> EventRecord | None:
        return self._by_id.get(event_id)

    def get_event_by_title(self, title: str) -> EventRecord | None:
        for record in self._by_id.values():
            if record.title == title:
                return record
        return None

    def reflects(self, change: str, row: dict) -> bool:
        """True when the cache already holds the effect of a store change.

        Lets the change feed skip reloads for this manager's own writes.
        """
        if change == "DELETE":
            return row.get("id") not in self._by_id
        cached = self._by_id.get(row.get("id"))
        return (
            cached is not None
            and cached.updated_at is not None
            and cached.updated_at == row.get("updated_at")
        )

    def snapshot(self) -> dict[str, Any]:
        return {
            "loaded": self.loaded,
            "last_refreshed_at": self.last_refreshed_at,
            "seed_overrides": len(self._overrides),
            "admin_events": len(self._admin_events),
            "listeners": len(self._listeners),
        }

    # ------------------------------------------------------------------
    # Loads
    # ------------------------------------------------------------------
    async def refresh(self) -> None:
        """Reload every override from the store and replace the cache.

        A failed load is logged and leaves the previous cache untouched.
        """
        try:
            rows = await self._store.select(EVENTS_TABLE, order="-updated_at")
        except Exception:
            CACHE_REFRESH_TOTAL.labels(status="failed").inc()
            logger.exception("Error loading event overrides, keeping previous cache")
            return

        records = []
        for row in rows:
            try:
                records.append(EventRecord.model_validate(row))
            except PydanticValidationError as e:
                logger.warning("Skipping malformed event row %s: %s", row.get("id"), e)

        overrides: dict[str, EventRecord] = {}
        admin_events: dict[str, EventRecord] = {}
        by_id: dict[str, EventRecord] = {}
        # Newest first: when several rows link to one seed the latest edit wins
        for record in records:
            by_id[record.id] = record
            link = self._seed_link(record)
            if link is None:
                admin_events[record.id] = record
            else:
                overrides.setdefault(link, record)

        self._overrides = overrides
        self._admin_events = admin_events
        self._by_id = by_id
        self.loaded = True
        self.last_refreshed_at = datetime.utcnow()
        CACHE_REFRESH_TOTAL.labels(status="completed").inc()
        self._update_gauges()
        logger.info(
            "Event data loaded: %d seed overrides, %d admin-created, %d rows",
            len(overrides),
            len(admin_events),
            len(records),
        )
        self._notify()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def ensure_event_exists(self, name: str, created_by: str | None) -> str:
        """Return the stored id for an event, creating it from its seed if needed.

        Creation is an upsert on ``seed_key``; a concurrent caller that got
        there first wins and its row's id is returned.
        """
        name = unquote(name)
        # Legacy rows without a seed_key are linked by title
        for filters in ({"seed_key": name}, {"title": name, "seed_key": None}):
            existing = await self._store.select(EVENTS_TABLE, filters)
            if existing:
                return existing[0]["id"]

        seed = self._seed_feature(name)
        if seed is None:
            raise NotFoundError(f"Event not found in seed data: {name}")
        if not created_by:
            raise ValidationError("An authenticated user is required to create an event")

        props = seed["properties"]
        start_time, end_time = split_time_label(props.get("time"))
        record = {
            "id": str(uuid4()),
            "seed_key": name,
            "title": name,
            "description": props.get("description"),
            "event_type": props.get("eventType"),
            "event_date": _parse_date(props.get("date")),
            "start_time": start_time,
            "end_time": end_time,
            "location": props.get("location"),
            "address": props.get("address"),
            "max_participants": props.get("max_participants"),
            "requirements": props.get("requirements"),
            "what_to_bring": props.get("what_to_bring"),
            "organizer_name": props.get("organizer_name") or settings.default_organizer,
            "organizer_contact": props.get("organizer_contact"),
            "status": "active",
            "created_by": created_by,
            "updated_at": datetime.utcnow(),
        }
        try:
            stored = await self._store.upsert(EVENTS_TABLE, record, conflict_keys=["seed_key"])
        except PersistenceError:
            EVENT_WRITES_TOTAL.labels(operation="ensure", status="failed").inc()
            logger.error("Error creating event %r", name)
            raise
        EVENT_WRITES_TOTAL.labels(operation="ensure", status="completed").inc()
        logger.info("Ensured stored event %r -> %s", name, stored["id"])

        self._cache(EventRecord.model_validate(stored))
        self._notify()
        return stored["id"]

    async def create_event(self, data: EventCreate | dict, created_by: str) -> EventRecord:
        """Insert an admin-created event (one with no seed feature)."""
        try:
            payload = EventCreate.model_validate(data).model_dump()
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc
        if not created_by:
            raise ValidationError("created_by is required")

        payload.update(
            id=str(uuid4()),
            organizer_name=payload["organizer_name"] or settings.default_organizer,
            current_participants=0,
            created_by=created_by,
            updated_at=datetime.utcnow(),
        )
        try:
            stored = await self._store.insert(EVENTS_TABLE, payload)
        except PersistenceError:
            EVENT_WRITES_TOTAL.labels(operation="create", status="failed").inc()
            logger.error("Error creating event %r", payload["title"])
            raise
        EVENT_WRITES_TOTAL.labels(operation="create", status="completed").inc()

        record = EventRecord.model_validate(stored)
        self._cache(record)
        self._notify()
        return record

    async def update_event(self, event_id: str, patch: EventUpdate | dict) -> EventRecord:
        """Apply ``patch`` to a stored event, keeping its creator.

        Raises NotFoundError when no row has ``event_id``; store failures
        propagate as PersistenceError and leave the cache unchanged.
        """
        try:
            values = EventUpdate.model_validate(patch).model_dump(exclude_unset=True)
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc

        rows = await self._store.select(EVENTS_TABLE, {"id": event_id})
        if not rows:
            raise NotFoundError(f"Event {event_id} not found")
        existing = rows[0]
        if not existing.get("created_by"):
            raise ValidationError("Cannot update event: original created_by field is missing")

        values["created_by"] = existing["created_by"]
        values["updated_at"] = datetime.utcnow()
        # Rows written before seed_key existed are linked by title; pin the
        # link before the title can change.
        title = existing.get("title")
        if not existing.get("seed_key") and title in self._seed_names:
            holder = self._overrides.get(title)
            if holder is None or holder.id == event_id:
                values["seed_key"] = title

        try:
            stored = await self._store.update(EVENTS_TABLE, values, {"id": event_id})
        except PersistenceError:
            EVENT_WRITES_TOTAL.labels(operation="update", status="failed").inc()
            logger.error("Error updating event %s", event_id)
            raise
        if stored is None:
            raise NotFoundError(f"Event {event_id} not found")
        EVENT_WRITES_TOTAL.labels(operation="update", status="completed").inc()

        record = EventRecord.model_validate(stored)
        self._cache(record)
        self._notify()
        return record

    async def delete_event(self, event_id: str) -> None:
        try:
            removed = await self._store.delete(EVENTS_TABLE, {"id": event_id})
        except PersistenceError:
            EVENT_WRITES_TOTAL.labels(operation="delete", status="failed").inc()
            logger.error("Error deleting event %s", event_id)
            raise
        if not removed:
            raise NotFoundError(f"Event {event_id} not found")
        EVENT_WRITES_TOTAL.labels(operation="delete", status="completed").inc()

        self._forget(event_id)
        self._update_gauges()
        self._notify()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_listener(self, callback: Listener) -> Callable[[], None]:
        """Register ``callback``; call the returned function to unregister it."""
        self._listeners[callback] = None
        CACHE_LISTENERS.set(len(self._listeners))

        def remove() -> None:
            self._listeners.pop(callback, None)
            CACHE_LISTENERS.set(len(self._listeners))

        return remove

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                LISTENER_ERRORS_TOTAL.inc()
                logger.exception("Event listener %r failed", callback)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _seed_feature(self, name: str) -> dict | None:
        for feature in self._seeds["features"]:
            if feature["properties"]["name"] == name:
                return feature
        return None

    def _seed_link(self, record: EventRecord) -> str | None:
        if record.seed_key:
            return record.seed_key if record.seed_key in self._seed_names else None
        if record.title in self._seed_names:
            return record.title
        return None

    def _cache(self, record: EventRecord) -> None:
        self._forget(record.id)
        self._by_id[record.id] = record
        link = self._seed_link(record)
        if link is None:
            self._admin_events[record.id] = record
        else:
            self._overrides[link] = record
        self._update_gauges()

    def _forget(self, event_id: str) -> None:
        self._by_id.pop(event_id, None)
        self._admin_events.pop(event_id, None)
        for link, record in list(self._overrides.items()):
            if record.id == event_id:
                del self._overrides[link]

    def _update_gauges(self) -> None:
        CACHE_OVERRIDES.labels(kind="seed").set(len(self._overrides))
        CACHE_OVERRIDES.labels(kind="admin").set(len(self._admin_events))

    def _merge(self, feature: dict, record: EventRecord) -> dict:
        merged = copy.deepcopy(feature)
        props = merged["properties"]
        original_name = props["name"]

        for attr, prop in _OVERRIDE_PROPERTIES:
            value = getattr(record, attr)
            if value is not None:
                props[prop] = copy.deepcopy(value)
        if record.event_type:
            props["type"] = event_type_label(record.event_type)
        if record.event_date is not None:
            props["date"] = record.event_date.isoformat()
        if record.updated_at is not None:
            props["updated_at"] = record.updated_at.isoformat()
        when = time_label(record.start_time, record.end_time, props.get("time"))
        if when is not None:
            props["time"] = when

        props["original_name"] = original_name
        return merged

    def _admin_feature(self, record: EventRecord) -> dict:
        if record.latitude is not None and record.longitude is not None:
            lat, lng = record.latitude, record.longitude
        else:
            lat, lng = coords_for_location(record.location)

        props: dict[str, Any] = {
            "id": record.id,
            "name": record.title,
            "description": record.description,
            "type": event_type_label(record.event_type) if record.event_type else None,
            "eventType": record.event_type,
            "date": _iso(record.event_date),
            "time": time_label(record.start_time, record.end_time, "Time TBD"),
            "location": record.location,
            "address": record.address or record.location,
            "organizer_name": record.organizer_name,
            "organizer_contact": record.organizer_contact,
            "status": record.status,
            "requirements": list(record.requirements or []),
            "what_to_bring": list(record.what_to_bring or []),
            "max_participants": record.max_participants,
            "current_participants": record.current_participants,
            "updated_at": _iso(record.updated_at),
            "priority": "medium",
        }
        if record.event_type == "treePlanting":
            props["trees"] = record.max_participants or 100
        elif record.event_type == "garden":
            props["plots"] = record.max_participants or 50

        return {
            "type": "Feature",
            "properties": props,
            "geometry": square_polygon(lat, lng),
        }
