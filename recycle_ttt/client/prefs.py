import os
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Optional, Tuple

DB_SCHEMA = """
CREATE TABLE IF NOT EXISTS prefs (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

DEFAULT_PATH = os.path.join(os.path.expanduser("~"), ".recycle_ttt.sqlite")


def default_path() -> str:
    return os.getenv("RECYCLE_TTT_PREFS", DEFAULT_PATH)


class Prefs:
    """Last used relay address and room, kept between runs."""
    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or default_path()
        self._lock = threading.Lock()
        self._ensure()

    def _ensure(self):
        with sqlite3.connect(self.db_path) as conn:
            conn.executescript(DB_SCHEMA)
            conn.commit()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._lock, sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT value FROM prefs WHERE key=?", (key,)).fetchone()
            return row[0] if row else default

    def set(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._lock, sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO prefs(key, value, updated_at) VALUES(?,?,?)
                ON CONFLICT(key) DO UPDATE SET
                  value = excluded.value,
                  updated_at = excluded.updated_at
            """, (key, value, now))
            conn.commit()

    def last_connection(self) -> Tuple[Optional[str], Optional[str]]:
        return self.get("server"), self.get("room")

    def remember(self, server: str, room: str) -> None:
        self.set("server", server)
        self.set("room", room)
