"""Administrator event CRUD. Every route requires the API key."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from ecomap.auth import require_api_key, require_user
from ecomap.dependencies import get_event_manager
from ecomap.exceptions import NotFoundError, PersistenceError, ValidationError
from ecomap.schemas import CacheStatusOut, EventCreate, EventRecord, EventUpdate
from ecomap.services.event_data import EventDataManager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_api_key)],
)


@router.post("/events", response_model=EventRecord, status_code=201)
async def create_event(
    data: EventCreate,
    user_id: str = Depends(require_user),
    manager: EventDataManager = Depends(get_event_manager),
):
    try:
        return await manager.create_event(data, user_id)
    except ValidationError as e:
        raise HTTPException(422, str(e))
    except PersistenceError as e:
        raise HTTPException(502, str(e))


@router.patch("/events/{event_id}", response_model=EventRecord)
async def update_event(
    event_id: str,
    data: EventUpdate,
    manager: EventDataManager = Depends(get_event_manager),
):
    try:
        record = await manager.update_event(event_id, data)
    except NotFoundError:
        raise HTTPException(404, "Event not found")
    except ValidationError as e:
        raise HTTPException(422, str(e))
    except PersistenceError as e:
        raise HTTPException(502, str(e))
    logger.info("Admin updated event %s (%s)", event_id, record.title)
    return record


@router.delete("/events/{event_id}", status_code=204)
async def delete_event(
    event_id: str, manager: EventDataManager = Depends(get_event_manager)
):
    try:
        await manager.delete_event(event_id)
    except NotFoundError:
        raise HTTPException(404, "Event not found")
    except PersistenceError as e:
        raise HTTPException(502, str(e))
    logger.info("Admin deleted event %s", event_id)


@router.post("/refresh", response_model=CacheStatusOut)
async def refresh(manager: EventDataManager = Depends(get_event_manager)):
    await manager.refresh()
    return manager.snapshot()


@router.get("/status", response_model=CacheStatusOut)
async def status(manager: EventDataManager = Depends(get_event_manager)):
    return manager.snapshot()
