from __future__ import annotations

import logging
import os
import sqlite3
from datetime import datetime, timedelta
from typing import Optional

from shopfront.config import settings

logger = logging.getLogger(__name__)


def _connect(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or settings.db_path
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def init_db(db_path: Optional[str] = None) -> None:
    conn = _connect(db_path)
    try:
        with open(os.path.join(os.path.dirname(__file__), "schema.sql"), "r", encoding="utf-8") as f:
            conn.executescript(f.read())
        conn.commit()
    finally:
        conn.close()


def purge_sessions(older_than_days: int = 30, db_path: Optional[str] = None) -> int:
    """Drops session rows untouched for ``older_than_days``. Returns deleted count."""
    if older_than_days <= 0:
        raise ValueError("older_than_days must be > 0")
    cutoff = (datetime.now() - timedelta(days=older_than_days)).strftime("%Y-%m-%d %H:%M:%S")
    conn = _connect(db_path)
    try:
        cur = conn.execute("DELETE FROM session_kv WHERE updated_at < ?", (cutoff,))
        conn.commit()
        deleted = cur.rowcount
    finally:
        conn.close()
    logger.info("purged %s stale session rows", deleted)
    return deleted


class SqliteStorage:
    """Storage rows scoped to one session id. Last write wins."""

    def __init__(self, session_id: str, db_path: Optional[str] = None) -> None:
        if not session_id:
            raise ValueError("session_id is empty")
        self.session_id = session_id
        self.db_path = db_path or settings.db_path

    def get(self, key: str) -> Optional[str]:
        conn = _connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT value FROM session_kv WHERE session_id=? AND key=?",
                (self.session_id, key),
            ).fetchone()
            return str(row["value"]) if row else None
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        conn = _connect(self.db_path)
        try:
            conn.execute(
                "INSERT INTO session_kv(session_id, key, value, updated_at) VALUES(?,?,?,?) "
                "ON CONFLICT(session_id, key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                (self.session_id, key, value, _now()),
            )
            conn.commit()
        finally:
            conn.close()

    def delete(self, key: str) -> None:
        conn = _connect(self.db_path)
        try:
            conn.execute(
                "DELETE FROM session_kv WHERE session_id=? AND key=?",
                (self.session_id, key),
            )
            conn.commit()
        finally:
            conn.close()
