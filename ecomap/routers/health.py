from fastapi import APIRouter, Depends

from ecomap.dependencies import get_event_manager
from ecomap.services.event_data import EventDataManager

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(manager: EventDataManager = Depends(get_event_manager)):
    return {"status": "ok", "event_cache_loaded": manager.loaded}
