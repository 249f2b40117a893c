"""Local data store — SQLite at ~/.northlight/data.db."""

from __future__ import annotations

import json
import os
import sqlite3
from pathlib import Path
from typing import Optional


_DEFAULT_DB_PATH = os.path.join(
    str(Path.home()), ".northlight", "data.db"
)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS string_sets (
    key TEXT PRIMARY KEY,
    members TEXT NOT NULL
);
"""


class DataStore:
    """Local SQLite data store.

    Holds CLI/client settings and named string lists (the vote ledger lives
    under one fixed key).
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or os.environ.get(
            "NORTHLIGHT_DB_PATH", _DEFAULT_DB_PATH
        )
        os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            # Callers serialize writes; the client may run on a worker thread.
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_db(self) -> None:
        conn = self._get_conn()
        conn.executescript(_SCHEMA)
        conn.commit()

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    # ── Config ───────────────────────────────────────────────────────

    def get_config(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT value FROM config WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set_config(self, key: str, value: str) -> None:
        conn = self._get_conn()
        conn.execute(
            "INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)",
            (key, value),
        )
        conn.commit()

    def delete_config(self, key: str) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM config WHERE key = ?", (key,))
        conn.commit()

    # ── String lists ─────────────────────────────────────────────────

    def get_string_list(self, key: str) -> list[str]:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT members FROM string_sets WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return []
        members = json.loads(row["members"])
        return [m for m in members if isinstance(m, str)]

    def set_string_list(self, key: str, values: list[str]) -> None:
        conn = self._get_conn()
        conn.execute(
            "INSERT OR REPLACE INTO string_sets (key, members) VALUES (?, ?)",
            (key, json.dumps(values)),
        )
        conn.commit()
