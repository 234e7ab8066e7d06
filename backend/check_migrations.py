#!/usr/bin/env python3
"""Quick script to check that the courtqueue tables and guards exist in the database"""

import sys
from typing import List, Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from courtqueue.database import engine
from courtqueue.models.queue_match import ACTIVE_MATCH_INDEX

REQUIRED_TABLES = [
    "court",
    "courtavailability",
    "courtbooking",
    "bookingdaylock",
    "queuesession",
    "queueentry",
    "queuematch",
    "queuematchplayer",
]


def missing_schema(bind: Optional[Engine] = None) -> List[str]:
    """Names of required tables (and the active-match index) not present"""
    inspector = inspect(bind or engine)
    existing_tables = set(inspector.get_table_names())

    missing = [table for table in REQUIRED_TABLES if table not in existing_tables]
    if "queuematch" in existing_tables:
        indexes = {index["name"] for index in inspector.get_indexes("queuematch")}
        if ACTIVE_MATCH_INDEX not in indexes:
            missing.append(ACTIVE_MATCH_INDEX)
    return missing


def check_tables() -> bool:
    print("Checking for required courtqueue tables...")
    print(f"Database: {engine.url}")
    print()

    missing = missing_schema()
    for name in REQUIRED_TABLES + [ACTIVE_MATCH_INDEX]:
        print(f"{'MISSING' if name in missing else 'ok'}  {name}")

    print()
    if missing:
        print("ERROR: Missing tables detected!")
        print("Run migrations with: alembic upgrade head")
        return False
    print("All required tables exist!")
    return True


if __name__ == "__main__":
    sys.exit(0 if check_tables() else 1)
