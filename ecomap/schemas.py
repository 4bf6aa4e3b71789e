from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel

EventStatus = Literal["active", "cancelled", "completed", "draft"]


# --- Events ---
class EventRecord(BaseModel):
    """An override row as held in the event cache."""

    id: str
    seed_key: str | None = None
    title: str
    description: str | None = None
    event_type: str | None = None
    event_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    location: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    max_participants: int | None = None
    current_participants: int = 0
    requirements: list[str] | None = None
    what_to_bring: list[str] | None = None
    organizer_name: str | None = None
    organizer_contact: str | None = None
    status: str = "active"
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class EventCreate(BaseModel):
    title: str
    description: str | None = None
    event_type: str = "cleanup"
    event_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    location: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    max_participants: int | None = None
    requirements: list[str] = []
    what_to_bring: list[str] = []
    organizer_name: str | None = None
    organizer_contact: str | None = None
    status: EventStatus = "active"


class EventUpdate(BaseModel):
    """Partial update; only fields explicitly set are written."""

    title: str | None = None
    description: str | None = None
    event_type: str | None = None
    event_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    location: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    max_participants: int | None = None
    current_participants: int | None = None
    requirements: list[str] | None = None
    what_to_bring: list[str] | None = None
    organizer_name: str | None = None
    organizer_contact: str | None = None
    status: EventStatus | None = None


class EnsureEventOut(BaseModel):
    id: str


class CacheStatusOut(BaseModel):
    loaded: bool
    last_refreshed_at: datetime | None
    seed_overrides: int
    admin_events: int
    listeners: int


# --- Map ---
class FeatureOut(BaseModel):
    type: Literal["Feature"] = "Feature"
    properties: dict[str, Any]
    geometry: dict[str, Any]


class FeatureCollectionOut(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[FeatureOut]


# --- Participation ---
class NotificationPreferences(BaseModel):
    email: bool = True
    push: bool = False


class ParticipationOut(BaseModel):
    id: str
    event_id: str
    user_id: str
    notification_preferences: NotificationPreferences | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ParticipantCountOut(BaseModel):
    event_id: str
    count: int
