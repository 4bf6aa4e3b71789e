"""Record store used by the event cache and the participation helpers.

``RecordStore`` is the narrow contract the rest of the code depends on:
table-level CRUD with equality filters, an idempotent upsert, and an
in-process change feed. ``SqlRecordStore`` implements it on top of the
async SQLAlchemy session factory.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecomap.exceptions import PersistenceError
from ecomap.models import Event, EventParticipant

logger = logging.getLogger(__name__)

Record = dict[str, Any]
ChangeCallback = Callable[[str, Record], None]

TABLES = {
    "events": Event,
    "event_participants": EventParticipant,
}


class Subscription:
    """Handle returned by ``RecordStore.subscribe``."""

    def __init__(self, callbacks: list, callback: ChangeCallback):
        self._callbacks = callbacks
        self._callback = callback

    @property
    def active(self) -> bool:
        return self._callback in self._callbacks

    def unsubscribe(self) -> None:
        if self._callback in self._callbacks:
            self._callbacks.remove(self._callback)


class RecordStore(ABC):
    def __init__(self):
        self._subscribers: dict[str, list[ChangeCallback]] = {}

    @abstractmethod
    async def select(
        self, table: str, filters: Record | None = None, order: str | None = None
    ) -> list[Record]: ...

    @abstractmethod
    async def insert(self, table: str, record: Record) -> Record: ...

    @abstractmethod
    async def update(self, table: str, patch: Record, filters: Record) -> Record | None:
        """Apply ``patch`` to matching rows; return the first stored row or None."""

    @abstractmethod
    async def upsert(self, table: str, record: Record, conflict_keys: list[str]) -> Record:
        """Insert ``record`` unless a row with the same conflict keys exists.

        Returns the stored row either way.
        """

    @abstractmethod
    async def delete(self, table: str, filters: Record) -> int: ...

    def subscribe(self, table: str, on_change: ChangeCallback) -> Subscription:
        callbacks = self._subscribers.setdefault(table, [])
        callbacks.append(on_change)
        return Subscription(callbacks, on_change)

    def _emit(self, table: str, change: str, record: Record) -> None:
        for callback in list(self._subscribers.get(table, [])):
            try:
                callback(change, record)
            except Exception:
                logger.exception("Change callback failed for %s %s", table, change)


def _model(table: str):
    try:
        return TABLES[table]
    except KeyError:
        raise PersistenceError(f"Unknown table: {table}") from None


def _to_record(obj) -> Record:
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


def _where(stmt, model, filters: Record | None):
    for column, value in (filters or {}).items():
        stmt = stmt.where(getattr(model, column) == value)
    return stmt


def _order(stmt, model, order: str | None):
    if not order:
        return stmt
    if order.startswith("-"):
        return stmt.order_by(getattr(model, order[1:]).desc())
    return stmt.order_by(getattr(model, order))


class SqlRecordStore(RecordStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        super().__init__()
        self._session_factory = session_factory

    async def select(self, table, filters=None, order=None):
        model = _model(table)
        stmt = _order(_where(select(model), model, filters), model, order)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [_to_record(row) for row in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    async def insert(self, table, record):
        model = _model(table)
        try:
            async with self._session_factory() as session:
                obj = model(**record)
                session.add(obj)
                await session.commit()
                await session.refresh(obj)
                stored = _to_record(obj)
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
        self._emit(table, "INSERT", stored)
        return stored

    async def update(self, table, patch, filters):
        model = _model(table)
        try:
            async with self._session_factory() as session:
                result = await session.execute(_where(select(model), model, filters))
                rows = result.scalars().all()
                for obj in rows:
                    for column, value in patch.items():
                        setattr(obj, column, value)
                await session.commit()
                for obj in rows:
                    await session.refresh(obj)
                stored = [_to_record(obj) for obj in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
        for row in stored:
            self._emit(table, "UPDATE", row)
        return stored[0] if stored else None

    async def upsert(self, table, record, conflict_keys):
        model = _model(table)
        key = {column: record[column] for column in conflict_keys}
        try:
            async with self._session_factory() as session:
                result = await session.execute(_where(select(model), model, key))
                existing = result.scalars().first()
                if existing is not None:
                    return _to_record(existing)
                obj = model(**record)
                session.add(obj)
                try:
                    await session.commit()
                except IntegrityError:
                    # Lost the race to a concurrent insert with the same key
                    await session.rollback()
                    result = await session.execute(_where(select(model), model, key))
                    existing = result.scalars().first()
                    if existing is None:
                        raise
                    logger.info("Upsert on %s resolved to existing row %s", table, key)
                    return _to_record(existing)
                await session.refresh(obj)
                stored = _to_record(obj)
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
        self._emit(table, "INSERT", stored)
        return stored

    async def delete(self, table, filters):
        model = _model(table)
        try:
            async with self._session_factory() as session:
                result = await session.execute(_where(select(model), model, filters))
                rows = result.scalars().all()
                removed = [_to_record(obj) for obj in rows]
                for obj in rows:
                    await session.delete(obj)
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
        for row in removed:
            self._emit(table, "DELETE", row)
        return len(removed)
