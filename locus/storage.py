"""
Local board persistence (SQLite).

When the board is not backed by GitHub, the whole item list is kept as one
JSON array under a single key in a small key/value table. It is read once at
load and rewritten after every status move.

The base dataset (data/projects.json, plus an optional scanner output) is
what the board starts from, and what it falls back to when the stored array
is unreadable.
"""
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .schema import TaskRecord, ROOMS

logger = logging.getLogger(__name__)

STORAGE_KEY = "locus_items"


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class LocalStorage:
    """SQLite-backed key/value store for the local board."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize storage and create the table if needed."""
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "locus" / "locus.db")
        self.db_path = str(Path(db_path).expanduser())
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS local_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def load_raw(self, key: str = STORAGE_KEY) -> Optional[str]:
        """Stored text for ``key``, or None if nothing was saved yet."""
        with _connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM local_state WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row else None

    def save_raw(self, value: str, key: str = STORAGE_KEY) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with _connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO local_state (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
            """, (key, value, now))
            conn.commit()

    def save_items(self, items: List[TaskRecord], key: str = STORAGE_KEY) -> None:
        """Persist the full item list as one JSON array."""
        self.save_raw(json.dumps([item.to_dict() for item in items], ensure_ascii=False), key)

    def clear(self, key: str = STORAGE_KEY) -> None:
        with _connect(self.db_path) as conn:
            conn.execute("DELETE FROM local_state WHERE key = ?", (key,))
            conn.commit()


def load_base_dataset(
    data_file: Union[str, Path],
    scanned_file: Optional[Union[str, Path]] = None,
) -> List[TaskRecord]:
    """Items from projects.json, followed by scanned items if a scan output exists.

    A missing or broken projects.json raises; there is nothing to fall back to.
    """
    with open(Path(data_file).expanduser(), "r", encoding="utf-8") as f:
        data: Dict[str, Any] = json.load(f)

    items = [TaskRecord.from_dict(raw) for raw in data.get("items", [])]

    if scanned_file:
        scanned_path = Path(scanned_file).expanduser()
        if scanned_path.exists():
            with open(scanned_path, "r", encoding="utf-8") as f:
                scanned = json.load(f)
            items.extend(TaskRecord.from_dict(raw) for raw in scanned.get("scannedItems", []))

    return items


def load_local_items(
    storage: LocalStorage,
    data_file: Union[str, Path],
    key: str = STORAGE_KEY,
    scanned_file: Optional[Union[str, Path]] = None,
) -> List[TaskRecord]:
    """Stored items if present and readable, otherwise the base dataset."""
    stored = storage.load_raw(key)
    if stored is None:
        return load_base_dataset(data_file, scanned_file)

    try:
        raw_items = json.loads(stored)
        if not isinstance(raw_items, list):
            raise ValueError("stored board is not a list")
        items = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                raise ValueError(f"stored item is {type(raw).__name__}, not an object")
            items.append(TaskRecord.from_dict(raw))
        return items
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Stored board under '{key}' is malformed ({e}); using base dataset")
        return load_base_dataset(data_file, scanned_file)


def load_rooms(data_file: Union[str, Path]) -> Dict[str, Dict[str, str]]:
    """Room metadata keyed by room value.

    Entries from the ``rooms`` block of projects.json override the built-in
    names, descriptions and icons. Rooms the board does not know are ignored.
    """
    rooms = {room.value: dict(meta) for room, meta in ROOMS.items()}
    try:
        with open(Path(data_file).expanduser(), "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Room metadata unavailable from {data_file} ({e}); using defaults")
        return rooms

    block = data.get("rooms") if isinstance(data, dict) else None
    if not isinstance(block, dict):
        return rooms
    for key, meta in block.items():
        if key in rooms and isinstance(meta, dict):
            rooms[key].update({k: str(v) for k, v in meta.items() if k in ("name", "description", "icon")})
    return rooms
