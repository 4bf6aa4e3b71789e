#!/usr/bin/env python3
"""Dump the merged event collection (seed data + stored overrides) as GeoJSON.

Reads the database configured by DATABASE_URL.

Usage:
    python3 scripts/export_merged_events.py [-o merged.geojson] [--from 2025-04-01 --to 2025-06-30]
"""

import argparse
import asyncio
import json
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ecomap.database import async_session, engine, init_db  # noqa: E402
from ecomap.services.event_data import EventDataManager  # noqa: E402
from ecomap.services.filters import filter_by_date_range  # noqa: E402
from ecomap.store import SqlRecordStore  # noqa: E402


async def export(args: argparse.Namespace) -> int:
    await init_db()
    manager = await EventDataManager.create(SqlRecordStore(async_session))
    await engine.dispose()
    if not manager.loaded:
        print("Could not load stored events; aborting", file=sys.stderr)
        return 1

    data = manager.get_merged_event_data()
    data = filter_by_date_range(data, args.date_from, args.date_to)
    text = json.dumps(data, indent=2)
    if args.output:
        Path(args.output).write_text(text)
        print(f"Wrote {len(data['features'])} features to {args.output}")
    else:
        print(text)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("-o", "--output", help="write to this file instead of stdout")
    parser.add_argument("--from", dest="date_from", type=date.fromisoformat)
    parser.add_argument("--to", dest="date_to", type=date.fromisoformat)
    return asyncio.run(export(parser.parse_args()))


if __name__ == "__main__":
    sys.exit(main())
