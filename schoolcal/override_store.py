"""
Storage for per-date schedule overrides.

An override pins a date to a named schedule ("DEFAULT", "WED_LATE", ...) or
to an inline custom period list stored as ``CUSTOM:<json>``. Overrides stay
in place until removed. Writers are rare (one administrator), so the last
write wins and no locking is done here.

Uses SQLite for local development and PostgreSQL for production.
Automatically selects the appropriate store based on environment variables.
"""

import json
import logging
import os
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional

from .models import Period, deserialize_date, serialize_date, serialize_period

logger = logging.getLogger(__name__)

CUSTOM_PREFIX = "CUSTOM:"


def encode_custom_override(periods: List[Period]) -> str:
    """Encode an inline period list as an override value."""
    return CUSTOM_PREFIX + json.dumps([serialize_period(p) for p in periods])


def is_custom_override(value: str) -> bool:
    return value.startswith(CUSTOM_PREFIX)


def _date_key(day) -> str:
    if isinstance(day, str):
        return serialize_date(deserialize_date(day))
    if isinstance(day, datetime):
        return serialize_date(day.date())
    if isinstance(day, date):
        return serialize_date(day)
    raise TypeError(f"Override key must be a date, got {type(day).__name__}")


class OverrideStore:
    """Interface of a durable date -> override value map."""

    def get(self, day) -> Optional[str]:
        raise NotImplementedError

    def set(self, day, value: str):
        raise NotImplementedError

    def remove(self, day):
        raise NotImplementedError

    def clear(self):
        raise NotImplementedError

    def all(self) -> Dict[date, str]:
        """Return every override, keyed by date."""
        raise NotImplementedError


class InMemoryOverrideStore(OverrideStore):
    """Dict-backed store, used by tests and one-off CLI runs."""

    def __init__(self, initial: Optional[Dict] = None):
        self._values: Dict[str, str] = {}
        for day, value in (initial or {}).items():
            self.set(day, value)

    def get(self, day) -> Optional[str]:
        return self._values.get(_date_key(day))

    def set(self, day, value: str):
        self._values[_date_key(day)] = value

    def remove(self, day):
        self._values.pop(_date_key(day), None)

    def clear(self):
        self._values.clear()

    def all(self) -> Dict[date, str]:
        return {deserialize_date(k): v for k, v in sorted(self._values.items())}


class SQLiteOverrideStore(OverrideStore):
    """Stores overrides in a local SQLite database."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize override store.

        Args:
            db_path: SQLite file. Defaults to SCHOOLCAL_OVERRIDE_DB or
                     ~/.schoolcal/overrides.db
        """
        if db_path is None:
            env_path = os.getenv("SCHOOLCAL_OVERRIDE_DB")
            db_path = Path(env_path) if env_path else Path.home() / ".schoolcal" / "overrides.db"
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        conn = sqlite3.connect(self.db_path)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schedule_overrides (
                date_key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        conn.commit()
        conn.close()

    def get(self, day) -> Optional[str]:
        conn = sqlite3.connect(self.db_path)
        cursor = conn.execute(
            "SELECT value FROM schedule_overrides WHERE date_key = ?",
            (_date_key(day),)
        )
        row = cursor.fetchone()
        conn.close()

        if row is None:
            return None
        return row[0]

    def set(self, day, value: str):
        key = _date_key(day)
        conn = sqlite3.connect(self.db_path)
        conn.execute(
            """
            INSERT OR REPLACE INTO schedule_overrides (date_key, value, updated_at)
            VALUES (?, ?, ?)
            """,
            (key, value, datetime.now().isoformat())
        )
        conn.commit()
        conn.close()
        logger.info("Override set for %s", key)

    def remove(self, day):
        key = _date_key(day)
        conn = sqlite3.connect(self.db_path)
        conn.execute("DELETE FROM schedule_overrides WHERE date_key = ?", (key,))
        conn.commit()
        conn.close()
        logger.info("Override removed for %s", key)

    def clear(self):
        conn = sqlite3.connect(self.db_path)
        conn.execute("DELETE FROM schedule_overrides")
        conn.commit()
        conn.close()
        logger.info("All overrides cleared")

    def all(self) -> Dict[date, str]:
        conn = sqlite3.connect(self.db_path)
        cursor = conn.execute(
            "SELECT date_key, value FROM schedule_overrides ORDER BY date_key"
        )
        rows = cursor.fetchall()
        conn.close()
        return {deserialize_date(key): value for key, value in rows}


def get_override_store() -> OverrideStore:
    """Get the appropriate override store based on environment.

    Returns:
        PostgresOverrideStore if DATABASE_URL is set, otherwise SQLiteOverrideStore
    """
    if os.getenv("DATABASE_URL"):
        from .postgres_store import PostgresOverrideStore
        return PostgresOverrideStore()
    return SQLiteOverrideStore()
