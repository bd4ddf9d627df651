from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import StorageError

SCHEMA_VERSION = 1


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_dumps(value: Any) -> str:
    return json.dumps(
        value,
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )


_MIGRATIONS: dict[int, str] = {
    1: """
CREATE TABLE IF NOT EXISTS local_state (
  key TEXT PRIMARY KEY,
  value_json TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
""".strip(),
}


def initialize_sqlite(conn: sqlite3.Connection) -> None:
    """
    Initialize the local state database.

    Idempotent: safe to call on every startup.
    """
    conn.execute("PRAGMA busy_timeout = 5000")

    # WAL is best-effort (e.g., in-memory DBs won't use it).
    try:
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
    except sqlite3.DatabaseError:
        pass

    _apply_migrations(conn)


def _apply_migrations(conn: sqlite3.Connection) -> None:
    with conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)"
        )

    rows = conn.execute("SELECT version FROM schema_migrations").fetchall()
    applied: set[int] = {int(r[0]) for r in rows}

    for version in range(1, SCHEMA_VERSION + 1):
        if version in applied:
            continue

        script = _MIGRATIONS.get(version)
        if not script:
            raise StorageError(f"Missing migration script for version={version}")

        with conn:
            conn.executescript(script)
            conn.execute(
                "INSERT INTO schema_migrations(version, applied_at) VALUES (?, ?)",
                (version, _utc_now_iso()),
            )


class LocalStateStore:
    """
    Key/value state that lives on this device only, stored as JSON in SQLite.

    Each key holds one serialized value that is rewritten wholesale on update.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row

    @classmethod
    def open(cls, path: str | Path) -> "LocalStateStore":
        db_path = str(path)
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(db_path)
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to open sqlite database: {db_path}: {e}") from e

        try:
            initialize_sqlite(conn)
        except sqlite3.DatabaseError as e:
            conn.close()
            raise StorageError(f"Failed to initialize sqlite schema: {e}") from e

        return cls(conn)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "LocalStateStore":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def get_raw(self, key: str) -> str | None:
        k = (key or "").strip()
        if not k:
            raise ValueError("key must be non-empty")

        try:
            row = self._conn.execute(
                "SELECT value_json FROM local_state WHERE key = ?",
                (k,),
            ).fetchone()
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to read local state {k!r}: {e}") from e

        if row is None:
            return None
        return str(row["value_json"])

    def get_json(self, key: str) -> Any | None:
        """Return the decoded value, or None if missing or not valid JSON."""
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    def set_json(self, key: str, value: Any) -> None:
        self.set_raw(key, _json_dumps(value))

    def set_raw(self, key: str, raw: str) -> None:
        k = (key or "").strip()
        if not k:
            raise ValueError("key must be non-empty")

        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO local_state(key, value_json, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                      value_json = excluded.value_json,
                      updated_at = excluded.updated_at
                    """.strip(),
                    (k, raw, _utc_now_iso()),
                )
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to write local state {k!r}: {e}") from e
