from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from ecomap.auth import require_user
from ecomap.dependencies import get_event_manager, get_store
from ecomap.exceptions import NotFoundError, PersistenceError, ValidationError
from ecomap.schemas import (
    EnsureEventOut,
    EventRecord,
    FeatureCollectionOut,
    FeatureOut,
    NotificationPreferences,
    ParticipantCountOut,
    ParticipationOut,
)
from ecomap.services.event_data import EventDataManager
from ecomap.services.filters import filter_by_date_range, filter_by_event_type
from ecomap.services.participation import join_event, leave_event, participant_count
from ecomap.store import RecordStore

router = APIRouter(prefix="/api/events", tags=["events"])


@router.get("", response_model=FeatureCollectionOut)
async def list_events(
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    event_type: list[str] | None = Query(None),
    manager: EventDataManager = Depends(get_event_manager),
):
    data = manager.get_merged_event_data()
    data = filter_by_date_range(data, date_from, date_to)
    return filter_by_event_type(data, event_type)


@router.get("/by-id/{event_id}", response_model=EventRecord)
async def get_event_by_id(
    event_id: str, manager: EventDataManager = Depends(get_event_manager)
):
    record = manager.get_event_by_id(event_id)
    if record is None:
        raise HTTPException(404, "Event not found")
    return record


@router.get("/by-id/{event_id}/participants/count", response_model=ParticipantCountOut)
async def count_participants(event_id: str, store: RecordStore = Depends(get_store)):
    try:
        count = await participant_count(store, event_id)
    except PersistenceError as e:
        raise HTTPException(502, str(e))
    return {"event_id": event_id, "count": count}


@router.delete("/by-id/{event_id}/join", status_code=204)
async def leave(
    event_id: str,
    user_id: str = Depends(require_user),
    store: RecordStore = Depends(get_store),
):
    try:
        await leave_event(store, event_id, user_id)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    except PersistenceError as e:
        raise HTTPException(502, str(e))


@router.get("/{name}", response_model=FeatureOut)
async def get_event(name: str, manager: EventDataManager = Depends(get_event_manager)):
    feature = manager.get_event_by_name(name)
    if feature is None:
        raise HTTPException(404, "Event not found")
    return feature


@router.post("/{name}/ensure", response_model=EnsureEventOut)
async def ensure_event(
    name: str,
    user_id: str = Depends(require_user),
    manager: EventDataManager = Depends(get_event_manager),
):
    """Give a seed-only event a stored id so it can be joined."""
    try:
        event_id = await manager.ensure_event_exists(name, user_id)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    except ValidationError as e:
        raise HTTPException(422, str(e))
    except PersistenceError as e:
        raise HTTPException(502, str(e))
    return {"id": event_id}


@router.post("/{name}/join", response_model=ParticipationOut, status_code=201)
async def join(
    name: str,
    preferences: NotificationPreferences | None = Body(None),
    user_id: str = Depends(require_user),
    manager: EventDataManager = Depends(get_event_manager),
    store: RecordStore = Depends(get_store),
):
    try:
        return await join_event(
            manager,
            store,
            name,
            user_id,
            preferences.model_dump() if preferences else None,
        )
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    except PersistenceError as e:
        raise HTTPException(502, str(e))
