# paintmix/data/color_store.py
"""
CSV-backed store of custom color records.

One row per record, keyed by `id`. The store is both the read-only snapshot
source for grouping/matching and a FormulaTransaction for the cascading
rename: writes are staged in memory between begin() and commit(), and commit
rewrites the file through a temp file + replace, so the file on disk always
holds either none or all of a transaction's writes.

All stores opened on the same file share one lock, held from begin() to
commit()/rollback(). Formulas read inside a transaction are remembered, and
commit refuses to overwrite a row that another writer changed on disk since.
"""
from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional, Tuple

from paintmix.errors import TransactionError
from .csv_io import ensure_header, normalize_id_value, read_rows, write_rows_atomic
from .interfaces import RecordId, Row
from .records import COLORS_HEADER, ColorRecord
from .validators import validate_record_id

log = logging.getLogger("paintmix.data.color_store")

_PATH_LOCKS: Dict[Path, Lock] = {}
_PATH_LOCKS_GUARD = Lock()


def _lock_for(csv_path: Path) -> Lock:
    key = csv_path.resolve()
    with _PATH_LOCKS_GUARD:
        if key not in _PATH_LOCKS:
            _PATH_LOCKS[key] = Lock()
        return _PATH_LOCKS[key]


class CsvColorStore:
    def __init__(self, csv_path: Path):
        self.csv_path = Path(csv_path)
        self._lock = _lock_for(self.csv_path)
        self._pending: Optional[Dict[str, str]] = None  # id -> new formula
        self._seen: Dict[str, str] = {}  # id -> formula as read in this transaction
        ensure_header(self.csv_path, COLORS_HEADER)

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------

    def read_all_rows(self) -> List[Row]:
        return read_rows(self.csv_path)

    def load_records(self) -> List[ColorRecord]:
        """Snapshot of all records in file order."""
        records = [ColorRecord.from_row(r) for r in self.read_all_rows()]
        log.debug("loaded %d records from %s", len(records), self.csv_path)
        return records

    def add_record(self, row: Row) -> None:
        """Append one record. Raises ValueError on a bad or duplicate id."""
        record_id = normalize_id_value(row.get("id"))
        v = validate_record_id(record_id)
        if not v.ok:
            raise ValueError(v.message)
        with self._lock:
            rows = self.read_all_rows()
            if any(normalize_id_value(r.get("id")) == record_id for r in rows):
                raise ValueError(f"'{record_id}' already exists.")
            new_row = {k: ("" if val is None else str(val)) for k, val in row.items()}
            new_row["id"] = record_id
            rows.append(new_row)
            write_rows_atomic(self.csv_path, COLORS_HEADER, rows)
        log.info("Added record id=%s to %s", record_id, self.csv_path)

    def close(self) -> None:
        """No handle is kept open between calls; present so callers can close any store."""

    # -------------------------------------------------------------------------
    # FormulaTransaction
    # -------------------------------------------------------------------------

    def read_formulas(self) -> Iterable[Tuple[RecordId, str]]:
        pairs = [(normalize_id_value(r.get("id")), r.get("formula") or "") for r in self.read_all_rows()]
        if self._pending is not None:
            self._seen = dict(pairs)
        return pairs

    def begin(self) -> None:
        self._lock.acquire()
        self._pending = {}
        self._seen = {}

    def write_formula(self, record_id: RecordId, formula: str) -> None:
        if self._pending is None:
            raise RuntimeError("write_formula() called outside begin()/commit()")
        self._pending[normalize_id_value(record_id)] = formula

    def commit(self) -> None:
        if self._pending is None:
            raise RuntimeError("commit() called without begin()")
        try:
            rows = self.read_all_rows()
            current = {normalize_id_value(r.get("id")): r.get("formula") or "" for r in rows}
            missing = sorted(set(self._pending) - set(current))
            if missing:
                raise KeyError(f"No record with id(s) {missing}")
            stale = sorted(
                rid for rid in self._pending
                if rid in self._seen and current[rid] != self._seen[rid]
            )
            if stale:
                raise TransactionError(f"Record(s) {stale} changed on disk since they were read")
            for r in rows:
                rid = normalize_id_value(r.get("id"))
                if rid in self._pending:
                    r["formula"] = self._pending[rid]
            write_rows_atomic(self.csv_path, COLORS_HEADER, rows)
            log.info("Committed %d formula update(s) to %s", len(self._pending), self.csv_path)
        finally:
            self._pending = None
            self._seen = {}
            self._lock.release()

    def rollback(self) -> None:
        if self._pending is None:
            return
        log.info("Rolled back %d staged formula update(s)", len(self._pending))
        self._pending = None
        self._seen = {}
        self._lock.release()
