from __future__ import annotations

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generator, List, Optional

from .models import COLLECTIONS, DATETIME_FIELDS
from .repositories import Record, RecordStore

logger = logging.getLogger(__name__)


def _encode(record: Record) -> str:
    def default(value: Any) -> str:
        if isinstance(value, datetime):
            return value.isoformat()
        raise TypeError(f"Unsupported type for storage: {type(value).__name__}")

    return json.dumps(record, default=default)


def _decode(data: str) -> Record:
    record = json.loads(data)
    for key in DATETIME_FIELDS:
        value = record.get(key)
        if isinstance(value, str):
            record[key] = datetime.fromisoformat(value)
    return record


class SQLiteRecordStore(RecordStore):
    """
    Lightweight SQLite store implementing the RecordStore interface.

    Each collection is a table of ``(id, data)`` rows where ``data`` is the
    record serialized as JSON. Rows are listed in rowid order, and upserts keep
    the rowid of the replaced row.
    """

    def __init__(self, db_path: str) -> None:
        super().__init__()
        self._db_path = db_path

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def open(self) -> None:
        os.makedirs(os.path.dirname(self._db_path) or ".", exist_ok=True)
        with self._conn() as conn:
            for table in COLLECTIONS:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        id TEXT PRIMARY KEY,
                        data TEXT NOT NULL
                    )
                    """
                )
        logger.info("SQLite record store opened at %s", self._db_path)

    def close(self) -> None:
        # Connections are per-operation; nothing stays open between calls.
        logger.info("SQLite record store closed")

    def get(self, collection: str, record_id: str) -> Optional[Record]:
        self._check_collection(collection)
        with self._conn() as conn:
            row = conn.execute(f"SELECT data FROM {collection} WHERE id = ?", (record_id,)).fetchone()
            return _decode(row["data"]) if row else None

    def list(self, collection: str) -> List[Record]:
        self._check_collection(collection)
        with self._conn() as conn:
            rows = conn.execute(f"SELECT data FROM {collection} ORDER BY rowid").fetchall()
            return [_decode(r["data"]) for r in rows]

    def put(self, collection: str, record: Record) -> None:
        self._check_collection(collection)
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {collection} (id, data) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET data = excluded.data
                """,
                (record["id"], _encode(record)),
            )

    def remove(self, collection: str, record_id: str) -> bool:
        self._check_collection(collection)
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {collection} WHERE id = ?", (record_id,))
            return cur.rowcount > 0
