import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator
from pythonjsonlogger import jsonlogger

from ecomap.config import settings
from ecomap.database import async_session, init_db
from ecomap.routers import admin, events, health, participations
from ecomap.services.event_data import EventDataManager
from ecomap.services.realtime import watch_events
from ecomap.services.scheduler import start_scheduler, stop_scheduler
from ecomap.store import SqlRecordStore

# Configure JSON structured logging for Loki
handler = logging.StreamHandler(sys.stdout)
formatter = jsonlogger.JsonFormatter(
    fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
    rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
)
handler.setFormatter(formatter)
logging.root.handlers = [handler]
logging.root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

# Suppress verbose logs from external libraries
logging.getLogger("apscheduler").setLevel(logging.WARNING)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Ecomap")
    await init_db()
    store = SqlRecordStore(async_session)
    manager = await EventDataManager.create(store)
    if not manager.loaded:
        logger.warning("Initial event load failed, serving seed data until the next refresh")
    app.state.store = store
    app.state.event_manager = manager
    subscription = watch_events(manager, store)
    start_scheduler(manager)
    yield
    stop_scheduler()
    subscription.unsubscribe()
    logger.info("Shutting down Ecomap")


app = FastAPI(title="Ecomap", lifespan=lifespan)

# Add Prometheus metrics instrumentation
Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/health", "/metrics"],
).instrument(app).expose(app, endpoint="/metrics")

app.include_router(health.router)
app.include_router(events.router)
app.include_router(admin.router)
app.include_router(participations.router)
