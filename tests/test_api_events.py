"""Tests for the /api/events, /api/admin and /api/participations endpoints.

The routers run against an event cache backed by the in-memory FakeStore.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from conftest import FakeStore
from ecomap.config import settings
from ecomap.routers import admin, events, health, participations
from ecomap.services.event_data import EventDataManager

USER = {"X-User-Id": "user-1"}


@pytest_asyncio.fixture
async def api(seeds):
    store = FakeStore(
        {
            "events": [
                {
                    "id": "u1",
                    "seed_key": "Beach Cleanup",
                    "title": "Beach Cleanup",
                    "event_date": "2024-06-01",
                    "address": "1 Shore Rd",
                    "created_by": "admin",
                }
            ]
        }
    )
    manager = await EventDataManager.create(store, seeds=seeds)

    app = FastAPI()
    app.include_router(health.router)
    app.include_router(events.router)
    app.include_router(admin.router)
    app.include_router(participations.router)
    app.state.event_manager = manager
    app.state.store = store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client, manager, store


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------
class TestReadEvents:
    @pytest.mark.asyncio
    async def test_health(self, api):
        client, _, _ = api
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "event_cache_loaded": True}

    @pytest.mark.asyncio
    async def test_list_returns_merged_collection(self, api):
        client, _, _ = api
        resp = await client.get("/api/events")
        assert resp.status_code == 200
        data = resp.json()
        assert data["type"] == "FeatureCollection"
        beach = data["features"][0]["properties"]
        assert beach["date"] == "2024-06-01"
        assert beach["address"] == "1 Shore Rd"
        assert beach["type"] == "Coastal Debris"

    @pytest.mark.asyncio
    async def test_list_filters(self, api):
        client, _, _ = api
        resp = await client.get(
            "/api/events", params={"date_from": "2024-04-01", "date_to": "2024-04-30"}
        )
        names = [f["properties"]["name"] for f in resp.json()["features"]]
        assert names == ["Park Tree Planting"]

        resp = await client.get("/api/events", params={"event_type": "cleanup"})
        names = [f["properties"]["name"] for f in resp.json()["features"]]
        assert names == ["Beach Cleanup"]

    @pytest.mark.asyncio
    async def test_get_by_name(self, api):
        client, _, _ = api
        resp = await client.get("/api/events/Beach%20Cleanup")
        assert resp.status_code == 200
        assert resp.json()["properties"]["id"] == "u1"

        resp = await client.get("/api/events/Nowhere")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_get_by_id(self, api):
        client, _, _ = api
        resp = await client.get("/api/events/by-id/u1")
        assert resp.status_code == 200
        assert resp.json()["title"] == "Beach Cleanup"
        assert (await client.get("/api/events/by-id/missing")).status_code == 404


# ---------------------------------------------------------------------------
# Ensure / join
# ---------------------------------------------------------------------------
class TestEnsureAndJoin:
    @pytest.mark.asyncio
    async def test_ensure_requires_user(self, api):
        client, _, _ = api
        resp = await client.post("/api/events/Park%20Tree%20Planting/ensure")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_ensure_creates_once(self, api):
        client, _, store = api
        first = await client.post("/api/events/Park%20Tree%20Planting/ensure", headers=USER)
        second = await client.post("/api/events/Park%20Tree%20Planting/ensure", headers=USER)
        assert first.status_code == 200
        assert first.json()["id"] == second.json()["id"]
        assert len(store.tables["events"]) == 2

    @pytest.mark.asyncio
    async def test_ensure_unknown_event(self, api):
        client, _, _ = api
        resp = await client.post("/api/events/Moon%20Cleanup/ensure", headers=USER)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_ensure_store_failure(self, api):
        client, _, store = api
        store.fail_writes = True
        resp = await client.post("/api/events/Park%20Tree%20Planting/ensure", headers=USER)
        assert resp.status_code == 502
        assert "upsert rejected" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_join_count_and_preferences(self, api):
        client, _, _ = api
        resp = await client.post("/api/events/Beach%20Cleanup/join", headers=USER)
        assert resp.status_code == 201
        participation = resp.json()
        assert participation["event_id"] == "u1"
        assert participation["notification_preferences"] == {"email": True, "push": False}

        resp = await client.get("/api/events/by-id/u1/participants/count")
        assert resp.json() == {"event_id": "u1", "count": 1}

        resp = await client.get("/api/participations", headers=USER)
        assert [p["id"] for p in resp.json()] == [participation["id"]]

        resp = await client.put(
            f"/api/participations/{participation['id']}/preferences",
            json={"email": False, "push": True},
            headers=USER,
        )
        assert resp.status_code == 200
        assert resp.json()["notification_preferences"] == {"email": False, "push": True}

        resp = await client.put(
            f"/api/participations/{participation['id']}/preferences",
            json={"email": False, "push": True},
            headers={"X-User-Id": "someone-else"},
        )
        assert resp.status_code == 404

        resp = await client.delete("/api/events/by-id/u1/join", headers=USER)
        assert resp.status_code == 204
        resp = await client.delete("/api/events/by-id/u1/join", headers=USER)
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------
class TestAdmin:
    @pytest.mark.asyncio
    async def test_update_event(self, api):
        client, manager, _ = api
        resp = await client.patch(
            "/api/admin/events/u1", json={"title": "Shore Cleanup", "status": "active"}
        )
        assert resp.status_code == 200
        assert resp.json()["title"] == "Shore Cleanup"
        assert resp.json()["created_by"] == "admin"

        resp = await client.get("/api/events/Shore%20Cleanup")
        assert resp.json()["properties"]["original_name"] == "Beach Cleanup"

    @pytest.mark.asyncio
    async def test_update_unknown_event(self, api):
        client, _, _ = api
        resp = await client.patch("/api/admin/events/missing", json={"title": "X"})
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_update_invalid_status(self, api):
        client, _, _ = api
        resp = await client.patch("/api/admin/events/u1", json={"status": "exploded"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_api_key_enforced_when_configured(self, api):
        client, _, _ = api
        with patch.object(settings, "api_key", "secret"):
            resp = await client.patch("/api/admin/events/u1", json={"title": "X"})
            assert resp.status_code == 401
            resp = await client.patch(
                "/api/admin/events/u1", json={"title": "X"}, headers={"X-API-Key": "secret"}
            )
            assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_create_and_delete_event(self, api):
        client, _, _ = api
        resp = await client.post(
            "/api/admin/events",
            json={"title": "Fenway Garden Day", "event_type": "garden", "location": "Fenway"},
            headers=USER,
        )
        assert resp.status_code == 201
        created = resp.json()
        assert created["created_by"] == "user-1"
        assert created["organizer_name"] == "Environmental Protection Group"

        resp = await client.get("/api/events/Fenway%20Garden%20Day")
        assert resp.json()["properties"]["plots"] == 50

        resp = await client.delete(f"/api/admin/events/{created['id']}")
        assert resp.status_code == 204
        assert (await client.get("/api/events/Fenway%20Garden%20Day")).status_code == 404
        assert (await client.delete(f"/api/admin/events/{created['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_refresh_and_status(self, api):
        client, _, store = api
        store.tables["events"].append(
            {"id": "u2", "title": "Park Tree Planting", "created_by": "admin"}
        )
        resp = await client.post("/api/admin/refresh")
        assert resp.status_code == 200
        body = resp.json()
        assert body["loaded"] is True
        assert body["seed_overrides"] == 2
        assert body["admin_events"] == 0

        store.fail_selects = True
        await client.post("/api/admin/refresh")
        resp = await client.get("/api/admin/status")
        assert resp.json()["seed_overrides"] == 2
