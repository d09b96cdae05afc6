from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List
import csv
import logging

log = logging.getLogger("paintmix.data.csv")


# -------- normalization helpers --------
def normalize_key(s: str) -> str:
    """Normalize CSV header keys: strip whitespace and remove BOM."""
    if s is None:
        return ""
    return s.replace("\ufeff", "").strip()


def normalize_id_value(s) -> str:
    """Normalize ID values for robust matching."""
    if s is None:
        return ""
    return str(s).replace("\ufeff", "").strip()


# ---------------------------------------
def _ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def ensure_header(csv_path: Path, header: List[str]) -> None:
    """
    Ensure the CSV exists and starts with the provided header.
    - If file missing: create with `header`.
    - If file exists and header matches (ignoring BOM/whitespace): do nothing.
    - If the existing header is a subset of `header`: rewrite the file with
      the full header, filling missing columns with "".
    - Unknown extra columns raise ValueError (we never drop data silently).
    Always uses 'utf-8-sig' for Excel tolerance.
    """
    _ensure_parent_dir(csv_path)
    if not csv_path.exists():
        with csv_path.open("w", newline="", encoding="utf-8-sig") as f:
            csv.writer(f).writerow(header)
        log.info("Created CSV with header: %s", csv_path)
        return

    with csv_path.open("r", newline="", encoding="utf-8-sig") as f:
        r = csv.reader(f)
        try:
            existing: List[str] = next(r)
        except StopIteration:
            existing = []

    ex_norm = [normalize_key(x) for x in existing]
    want_norm = [normalize_key(x) for x in header]
    if ex_norm == want_norm:
        return

    extras = [x for x in ex_norm if x and x not in want_norm]
    if extras:
        raise ValueError(
            f"CSV header mismatch in {csv_path}: unknown column(s) {extras}.\n"
            f"Existing: {existing}\nCanonical: {header}"
        )

    rows = read_rows(csv_path)
    write_rows_atomic(csv_path, header, rows)
    log.info(
        "Upgraded CSV header by adding %d column(s): %s",
        len(want_norm) - len([x for x in ex_norm if x]),
        csv_path,
    )


def _normalize_row_keys(row: Dict[str, str]) -> Dict[str, str]:
    """Return a copy of row with normalized keys; values left as-is."""
    return {normalize_key(k): v for k, v in row.items() if k is not None}


def read_rows(csv_path: Path) -> List[Dict[str, str]]:
    """Read rows (BOM-tolerant). Return [] if file missing. Keys normalized."""
    if not csv_path.exists():
        return []
    with csv_path.open("r", newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        return [_normalize_row_keys(dict(row)) for row in reader]


def write_rows_atomic(csv_path: Path, header: List[str], rows: Iterable[Dict[str, str]]) -> None:
    """
    Rewrite the whole CSV via a temp file + replace, so readers see either
    the old file or the new one and never a half-written one.
    Missing columns -> "", extra keys ignored.
    """
    _ensure_parent_dir(csv_path)
    tmp = csv_path.with_suffix(csv_path.suffix + ".tmp")
    try:
        with tmp.open("w", newline="", encoding="utf-8-sig") as f:
            writer = csv.DictWriter(f, fieldnames=header, extrasaction="ignore")
            writer.writeheader()
            for row in rows:
                writer.writerow({col: row.get(col, "") or "" for col in header})
        tmp.replace(csv_path)
    finally:
        if tmp.exists():
            tmp.unlink()

