"""Prometheus metrics for ecomap.

All custom metrics use the 'ecomap_' prefix to avoid conflicts
with other applications in a shared observability stack.
"""

from prometheus_client import Counter, Gauge, Info

APP_INFO = Info(
    "ecomap_app",
    "Ecomap application info"
)
APP_INFO.info({"version": "1.0.0", "name": "ecomap"})

# Event cache
CACHE_REFRESH_TOTAL = Counter(
    "ecomap_event_cache_refresh_total",
    "Event cache loads by outcome",
    ["status"],  # status: completed, failed
)

CACHE_OVERRIDES = Gauge(
    "ecomap_event_cache_overrides",
    "Override records held in the event cache",
    ["kind"],  # seed, admin
)

CACHE_LISTENERS = Gauge(
    "ecomap_event_cache_listeners",
    "Registered event cache listeners",
)

LISTENER_ERRORS_TOTAL = Counter(
    "ecomap_event_cache_listener_errors_total",
    "Listener callbacks that raised during notification",
)

# Writes
EVENT_WRITES_TOTAL = Counter(
    "ecomap_event_writes_total",
    "Event writes by operation and outcome",
    ["operation", "status"],  # operation: ensure, create, update, delete
)
