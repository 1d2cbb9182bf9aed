"""
PostgreSQL-backed override store for production deployment.

Uses a hosted PostgreSQL database instead of local SQLite.
Automatically used when DATABASE_URL environment variable is set.
"""

import logging
import os
from datetime import date, datetime
from typing import Dict, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from .models import deserialize_date
from .override_store import OverrideStore, _date_key

logger = logging.getLogger(__name__)


class PostgresOverrideStore(OverrideStore):
    """Stores per-date schedule overrides in PostgreSQL.

    Every operation opens its own short-lived connection, so the store can
    be shared by request handlers without holding a connection open.
    """

    def __init__(self, database_url: Optional[str] = None):
        """Initialize PostgreSQL override store.

        Args:
            database_url: PostgreSQL connection string. If None, reads from
                         DATABASE_URL environment variable.

        Raises:
            ValueError: If database_url is not provided and DATABASE_URL env var is not set
            ConnectionError: If the database cannot be reached
        """
        if database_url is None:
            database_url = os.getenv("DATABASE_URL")

        if not database_url:
            raise ValueError(
                "DATABASE_URL environment variable must be set for the PostgreSQL store. "
                "For local development, use SQLiteOverrideStore instead."
            )

        self.database_url = database_url
        self._init_db()

    def _get_connection(self):
        """Get a database connection.

        Raises:
            ConnectionError: If connection fails
        """
        try:
            return psycopg2.connect(self.database_url)
        except psycopg2.OperationalError as e:
            raise ConnectionError(f"Failed to connect to PostgreSQL: {e}")

    def _init_db(self):
        conn = self._get_connection()
        try:
            cur = conn.cursor()
            cur.execute("""
                CREATE TABLE IF NOT EXISTS schedule_overrides (
                    date_key DATE PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)
            conn.commit()
            cur.close()
        finally:
            conn.close()

    def get(self, day) -> Optional[str]:
        conn = self._get_connection()
        try:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute(
                "SELECT value FROM schedule_overrides WHERE date_key = %s",
                (_date_key(day),)
            )
            row = cur.fetchone()
            cur.close()
            return row["value"] if row else None
        finally:
            conn.close()

    def set(self, day, value: str):
        key = _date_key(day)
        conn = self._get_connection()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO schedule_overrides (date_key, value, updated_at)
                VALUES (%s, %s, %s)
                ON CONFLICT (date_key)
                DO UPDATE SET value = EXCLUDED.value, updated_at = EXCLUDED.updated_at
                """,
                (key, value, datetime.now())
            )
            conn.commit()
            cur.close()
        finally:
            conn.close()
        logger.info("Override set for %s", key)

    def remove(self, day):
        key = _date_key(day)
        conn = self._get_connection()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM schedule_overrides WHERE date_key = %s", (key,))
            conn.commit()
            cur.close()
        finally:
            conn.close()
        logger.info("Override removed for %s", key)

    def clear(self):
        conn = self._get_connection()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM schedule_overrides")
            conn.commit()
            cur.close()
        finally:
            conn.close()
        logger.info("All overrides cleared")

    def all(self) -> Dict[date, str]:
        conn = self._get_connection()
        try:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute("SELECT date_key, value FROM schedule_overrides ORDER BY date_key")
            rows = cur.fetchall()
            cur.close()
        finally:
            conn.close()
        # DATE columns come back as datetime.date already
        return {
            row["date_key"] if isinstance(row["date_key"], date) else deserialize_date(row["date_key"]): row["value"]
            for row in rows
        }
