# paintmix/data/sqlite_store.py
"""
SQLite-backed store over a `custom_colors` table.

The connection runs in autocommit mode (isolation_level=None) so that
begin()/commit()/rollback() map one-to-one onto BEGIN/COMMIT/ROLLBACK and
the cascading rename controls the transaction boundary itself.
"""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from .interfaces import RecordId, Row
from .records import ColorRecord

log = logging.getLogger("paintmix.data.sqlite_store")

SCHEMA = """
CREATE TABLE IF NOT EXISTS custom_colors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    category_id INTEGER,
    color_code TEXT UNIQUE NOT NULL,
    formula TEXT,
    rgb_r INTEGER,
    rgb_g INTEGER,
    rgb_b INTEGER,
    cmyk_c REAL,
    cmyk_m REAL,
    cmyk_y REAL,
    cmyk_k REAL,
    hex_color TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
)
"""

_INSERT_COLUMNS = (
    "category_id", "color_code", "formula",
    "rgb_r", "rgb_g", "rgb_b",
    "cmyk_c", "cmyk_m", "cmyk_y", "cmyk_k",
    "hex_color",
)


class SqliteColorStore:
    def __init__(self, db: Union[str, Path, sqlite3.Connection]):
        if isinstance(db, sqlite3.Connection):
            self.conn = db
            self.conn.isolation_level = None
        else:
            Path(db).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(db), isolation_level=None)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute(SCHEMA)

    def close(self) -> None:
        self.conn.close()

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------

    def read_all_rows(self) -> List[Row]:
        cur = self.conn.execute("SELECT * FROM custom_colors ORDER BY id")
        return [dict(r) for r in cur.fetchall()]

    def load_records(self) -> List[ColorRecord]:
        return [ColorRecord.from_row(r) for r in self.read_all_rows()]

    def add_record(self, row: Row) -> int:
        """Insert a record and return its id. Empty strings are stored as NULL."""
        values = []
        for col in _INSERT_COLUMNS:
            v = row.get(col)
            values.append(None if v == "" else v)
        placeholders = ", ".join("?" for _ in _INSERT_COLUMNS)
        cur = self.conn.execute(
            f"INSERT INTO custom_colors ({', '.join(_INSERT_COLUMNS)}) VALUES ({placeholders})",
            values,
        )
        log.info("Added record id=%s code=%s", cur.lastrowid, row.get("color_code"))
        return cur.lastrowid

    # -------------------------------------------------------------------------
    # FormulaTransaction
    # -------------------------------------------------------------------------

    def read_formulas(self) -> Iterable[Tuple[RecordId, str]]:
        cur = self.conn.execute("SELECT id, formula FROM custom_colors ORDER BY id")
        return [(r["id"], r["formula"] or "") for r in cur.fetchall()]

    def begin(self) -> None:
        # write lock from the start, so reads inside the transaction cannot go stale
        self.conn.execute("BEGIN IMMEDIATE")

    def write_formula(self, record_id: RecordId, formula: str) -> None:
        cur = self.conn.execute(
            "UPDATE custom_colors SET formula = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (formula, record_id),
        )
        if cur.rowcount != 1:
            raise KeyError(f"No record with id {record_id!r}")

    def commit(self) -> None:
        self.conn.execute("COMMIT")

    def rollback(self) -> None:
        if self.conn.in_transaction:
            self.conn.execute("ROLLBACK")
