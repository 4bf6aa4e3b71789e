from fastapi import Request

from ecomap.services.event_data import EventDataManager
from ecomap.store import RecordStore


def get_event_manager(request: Request) -> EventDataManager:
    return request.app.state.event_manager


def get_store(request: Request) -> RecordStore:
    return request.app.state.store
