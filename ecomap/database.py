import logging
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ecomap.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    echo=False,
    connect_args={"timeout": 30},  # wait up to 30s for SQLite write lock before failing
)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


def _ensure_sqlite_dir(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


async def init_db(db_engine=None):
    db_engine = db_engine or engine
    _ensure_sqlite_dir(str(db_engine.url))
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Stable seed link: rows created before the column existed are linked by title
    async with db_engine.begin() as conn:
        try:
            await conn.execute(text("ALTER TABLE events ADD COLUMN seed_key TEXT"))
            logger.info("Migration: added seed_key column to events")
        except Exception:
            pass  # column already exists

    async with db_engine.begin() as conn:
        try:
            await conn.execute(text("ALTER TABLE events ADD COLUMN latitude REAL"))
            await conn.execute(text("ALTER TABLE events ADD COLUMN longitude REAL"))
            logger.info("Migration: added latitude/longitude columns to events")
        except Exception:
            pass  # columns already exist

    async with db_engine.begin() as conn:
        await conn.execute(text(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_event_seed_key "
            "ON events (seed_key)"
        ))
        await conn.execute(text(
            "CREATE INDEX IF NOT EXISTS idx_event_title "
            "ON events (title)"
        ))
        await conn.execute(text(
            "CREATE INDEX IF NOT EXISTS idx_participant_user "
            "ON event_participants (user_id)"
        ))

