# salesledger/storage.py
import os
import sqlite3
import datetime
import pytz
from typing import Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .models import LedgerError
from .logger import get_logger

logger = get_logger(__name__)

DB_PATH = os.getenv("LEDGER_DB_PATH", "/data/ledger_state.sqlite3")
WRITE_ATTEMPTS = max(1, int(os.getenv("LEDGER_WRITE_ATTEMPTS", "3")))


class StorageError(LedgerError):
    """The durable store could not be read or written."""


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


class SlotStore:
    """
    Durable key-value store backed by a single SQLite file.
    Each slot holds one string value and the time it was last written.
    """

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def ensure_db(self) -> None:
        try:
            con = self._connect()
            try:
                with con:
                    con.execute(
                        """
                        CREATE TABLE IF NOT EXISTS slots (
                            key TEXT PRIMARY KEY,
                            value TEXT NOT NULL,
                            updated_at TEXT
                        )
                    """
                    )
            finally:
                con.close()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open ledger store {self.db_path}: {e}") from e

    def read(self, key: str) -> Optional[str]:
        """Return the slot's value, or None when it was never written."""
        self.ensure_db()
        try:
            con = self._connect()
            try:
                row = con.execute(
                    "SELECT value FROM slots WHERE key=?", (key,)
                ).fetchone()
            finally:
                con.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read slot '{key}': {e}") from e
        return row[0] if row else None

    def write(self, key: str, value: str) -> None:
        self.ensure_db()
        try:
            self._write(key, value)
        except sqlite3.Error as e:
            logger.error("Write to slot '%s' failed: %s", key, e)
            raise StorageError(f"Cannot write slot '{key}': {e}") from e

    @retry(
        retry=retry_if_exception_type(sqlite3.OperationalError),
        wait=wait_exponential_jitter(initial=0.1, max=2),
        stop=stop_after_attempt(WRITE_ATTEMPTS),
        reraise=True,
    )
    def _write(self, key: str, value: str) -> None:
        con = self._connect()
        try:
            with con:
                con.execute(
                    """
                    INSERT INTO slots (key, value, updated_at)
                    VALUES (?,?,?)
                    ON CONFLICT(key) DO UPDATE SET
                        value=excluded.value,
                        updated_at=excluded.updated_at
                """,
                    (key, value, now_utc_iso()),
                )
        finally:
            con.close()
        logger.debug("Wrote %d chars to slot '%s'.", len(value), key)

    def updated_at(self, key: str) -> Optional[str]:
        self.ensure_db()
        try:
            con = self._connect()
            try:
                row = con.execute(
                    "SELECT updated_at FROM slots WHERE key=?", (key,)
                ).fetchone()
            finally:
                con.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read slot '{key}': {e}") from e
        return row[0] if row else None
