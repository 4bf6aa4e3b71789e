from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ecomap.auth import require_user
from ecomap.dependencies import get_store
from ecomap.exceptions import NotFoundError, PersistenceError
from ecomap.schemas import NotificationPreferences, ParticipationOut
from ecomap.services.participation import list_participations, update_notification_preferences
from ecomap.store import RecordStore

router = APIRouter(prefix="/api/participations", tags=["participations"])


@router.get("", response_model=list[ParticipationOut])
async def my_participations(
    user_id: str = Depends(require_user), store: RecordStore = Depends(get_store)
):
    try:
        return await list_participations(store, user_id)
    except PersistenceError as e:
        raise HTTPException(502, str(e))


@router.put("/{participation_id}/preferences", response_model=ParticipationOut)
async def set_preferences(
    participation_id: str,
    preferences: NotificationPreferences,
    user_id: str = Depends(require_user),
    store: RecordStore = Depends(get_store),
):
    try:
        return await update_notification_preferences(
            store, participation_id, preferences.model_dump(), user_id=user_id
        )
    except NotFoundError:
        raise HTTPException(404, "Participation not found")
    except PersistenceError as e:
        raise HTTPException(502, str(e))
