"""Upsert records into a local SQLite table."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Sequence

from ...errors import UploadError
from ..normalizer import NormalizedRecord
from .base import BaseExporter


class SQLiteExporter(BaseExporter):
    """Persist records as JSON payloads keyed by their opaque id."""

    def __init__(self, path: Path, table: str = "records") -> None:
        self.path = path
        self.table = table
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path)
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                id TEXT PRIMARY KEY,
                legacy_id INTEGER NOT NULL,
                payload TEXT NOT NULL
            )
            """
        )
        self.conn.commit()

    def upsert_batch(self, records: Sequence[NormalizedRecord]) -> None:
        rows = [
            (record.id, record.legacyId, json.dumps(record.to_payload(), ensure_ascii=False))
            for record in records
        ]
        try:
            with self.conn:
                self.conn.executemany(
                    f"INSERT OR REPLACE INTO {self.table}(id, legacy_id, payload) VALUES (?, ?, ?)",
                    rows,
                )
        except sqlite3.Error as exc:
            raise UploadError(f"SQLite upsert failed: {exc}") from exc

    def count(self) -> int:
        row = self.conn.execute(f"SELECT count(*) FROM {self.table}").fetchone()
        return int(row[0])

    def close(self) -> None:
        self.conn.close()


__all__ = ["SQLiteExporter"]
