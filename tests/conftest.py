"""Shared fixtures: an in-memory record store and a small seed collection."""

from __future__ import annotations

import copy

import pytest

from ecomap.exceptions import PersistenceError
from ecomap.store import RecordStore


class FakeStore(RecordStore):
    """Dict-backed RecordStore with switchable failures."""

    def __init__(self, tables: dict[str, list[dict]] | None = None):
        super().__init__()
        self.tables: dict[str, list[dict]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.fail_selects = False
        self.fail_writes = False
        self.calls: list[str] = []

    def _rows(self, table):
        return self.tables.setdefault(table, [])

    @staticmethod
    def _matches(row, filters):
        return all(row.get(k) == v for k, v in (filters or {}).items())

    async def select(self, table, filters=None, order=None):
        self.calls.append("select")
        if self.fail_selects:
            raise PersistenceError("connection refused")
        rows = [copy.deepcopy(r) for r in self._rows(table) if self._matches(r, filters)]
        if order:
            column = order.lstrip("-")
            present = [r for r in rows if r.get(column) is not None]
            missing = [r for r in rows if r.get(column) is None]
            present.sort(key=lambda r: r[column], reverse=order.startswith("-"))
            rows = present + missing
        return rows

    async def insert(self, table, record):
        self.calls.append("insert")
        if self.fail_writes:
            raise PersistenceError("insert rejected")
        self._rows(table).append(copy.deepcopy(record))
        self._emit(table, "INSERT", record)
        return copy.deepcopy(record)

    async def update(self, table, patch, filters):
        self.calls.append("update")
        if self.fail_writes:
            raise PersistenceError("update rejected")
        updated = None
        for row in self._rows(table):
            if self._matches(row, filters):
                row.update(copy.deepcopy(patch))
                updated = updated or copy.deepcopy(row)
        if updated is not None:
            self._emit(table, "UPDATE", updated)
        return updated

    async def upsert(self, table, record, conflict_keys):
        self.calls.append("upsert")
        if self.fail_writes:
            raise PersistenceError("upsert rejected")
        key = {k: record[k] for k in conflict_keys}
        for row in self._rows(table):
            if self._matches(row, key):
                return copy.deepcopy(row)
        self._rows(table).append(copy.deepcopy(record))
        self._emit(table, "INSERT", record)
        return copy.deepcopy(record)

    async def delete(self, table, filters):
        self.calls.append("delete")
        if self.fail_writes:
            raise PersistenceError("delete rejected")
        rows = self._rows(table)
        keep = [r for r in rows if not self._matches(r, filters)]
        removed = len(rows) - len(keep)
        self.tables[table] = keep
        return removed


def _square(lng: float, lat: float) -> dict:
    return {
        "type": "Polygon",
        "coordinates": [[
            [lng, lat], [lng + 0.01, lat], [lng + 0.01, lat - 0.01],
            [lng, lat - 0.01], [lng, lat],
        ]],
    }


@pytest.fixture
def seeds() -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {
                    "name": "Beach Cleanup",
                    "type": "Coastal Debris",
                    "priority": "high",
                    "date": "2024-05-01",
                    "description": "Litter pick along the shore.",
                    "eventType": "cleanup",
                    "address": None,
                },
                "geometry": _square(-70.95, 42.33),
            },
            {
                "type": "Feature",
                "properties": {
                    "name": "Park Tree Planting",
                    "type": "Urban Reforestation",
                    "priority": "medium",
                    "date": "2024-04-20",
                    "description": "Planting along the park edge.",
                    "eventType": "treePlanting",
                    "trees": 250,
                },
                "geometry": _square(-71.12, 42.33),
            },
        ],
    }


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
