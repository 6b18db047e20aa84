"""SQLite storage for device registry entries."""

from __future__ import annotations

import sqlite3
import threading
import time
from pathlib import Path
from typing import Any

from varbridge.bridge.registry import DeviceRegistryEntry

_SCHEMA_VERSION = 1


def _now_ms() -> int:
    return int(time.time() * 1000)


class SQLiteDeviceRegistryStore:
    """Thread-safe keyed store; every mutation touches a single row."""

    def __init__(self, db_path: str | Path, *, busy_timeout_ms: int = 5000) -> None:
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(f"PRAGMA busy_timeout = {max(0, int(busy_timeout_ms))}")
            cur.execute("PRAGMA journal_mode = WAL")
            self._conn.commit()
        self.init_schema()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def init_schema(self) -> None:
        with self._lock:
            cur = self._conn.cursor()
            current = self._get_user_version(cur)
            if current < 1:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS device_registry (
                      var_id INTEGER PRIMARY KEY,
                      kind TEXT NOT NULL,
                      floor TEXT NOT NULL,
                      room TEXT NOT NULL,
                      name TEXT NOT NULL,
                      enabled INTEGER NOT NULL,
                      updated_at INTEGER NOT NULL
                    )
                    """
                )
                cur.execute("CREATE INDEX IF NOT EXISTS idx_device_registry_room ON device_registry(room)")
                self._set_user_version(cur, _SCHEMA_VERSION)
            self._conn.commit()

    @staticmethod
    def _get_user_version(cur: sqlite3.Cursor) -> int:
        cur.execute("PRAGMA user_version")
        row = cur.fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def _set_user_version(cur: sqlite3.Cursor, version: int) -> None:
        cur.execute(f"PRAGMA user_version = {max(0, int(version))}")

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> DeviceRegistryEntry:
        return DeviceRegistryEntry(
            var_id=int(row["var_id"]),
            kind=str(row["kind"] or ""),
            floor=str(row["floor"] or ""),
            room=str(row["room"] or ""),
            name=str(row["name"] or ""),
            enabled=bool(row["enabled"]),
        )

    def get(self, var_id: int) -> DeviceRegistryEntry | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                "SELECT var_id, kind, floor, room, name, enabled FROM device_registry WHERE var_id = ?",
                (int(var_id),),
            )
            row = cur.fetchone()
        return self._row_to_entry(row) if row else None

    def upsert(self, entry: DeviceRegistryEntry) -> None:
        with self._lock:
            self._upsert_locked(self._conn.cursor(), entry)
            self._conn.commit()

    def _upsert_locked(self, cur: sqlite3.Cursor, entry: DeviceRegistryEntry) -> None:
        cur.execute(
            """
            INSERT INTO device_registry(var_id, kind, floor, room, name, enabled, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(var_id) DO UPDATE SET
              kind = excluded.kind,
              floor = excluded.floor,
              room = excluded.room,
              name = excluded.name,
              enabled = excluded.enabled,
              updated_at = excluded.updated_at
            """,
            (
                int(entry.var_id),
                entry.kind,
                entry.floor,
                entry.room,
                entry.name,
                1 if entry.enabled else 0,
                _now_ms(),
            ),
        )

    def delete(self, var_id: int) -> bool:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute("DELETE FROM device_registry WHERE var_id = ?", (int(var_id),))
            self._conn.commit()
            return cur.rowcount > 0

    def list_entries(self) -> list[DeviceRegistryEntry]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                "SELECT var_id, kind, floor, room, name, enabled FROM device_registry ORDER BY var_id ASC"
            )
            rows = cur.fetchall()
        return [self._row_to_entry(row) for row in rows]

    def room_options(self) -> list[str]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute("SELECT DISTINCT room FROM device_registry WHERE room <> '' ORDER BY room ASC")
            rows = cur.fetchall()
        return [str(row["room"]) for row in rows]

    def export_snapshot(self) -> dict[str, dict[str, Any]]:
        """Whole registry keyed by var_id (as string), for backup."""
        output: dict[str, dict[str, Any]] = {}
        for entry in self.list_entries():
            item = entry.to_dict()
            item.pop("var_id")
            output[str(entry.var_id)] = item
        return output

    def import_snapshot(self, snapshot: dict[str, Any], *, replace: bool = False) -> int:
        """Load a whole-map snapshot in one transaction, returns imported count."""
        entries = [
            DeviceRegistryEntry.from_dict(item if isinstance(item, dict) else {}, var_id=int(key))
            for key, item in snapshot.items()
        ]
        with self._lock:
            cur = self._conn.cursor()
            try:
                if replace:
                    cur.execute("DELETE FROM device_registry")
                for entry in entries:
                    self._upsert_locked(cur, entry)
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise
        return len(entries)
