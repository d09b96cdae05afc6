# paintmix/formula/duplicates.py
"""
Duplicate formula detection (order- and scale-insensitive).

Records are bucketed by the ratio signature of their formula text. Records
without a signature (empty, malformed, mixed or unknown units, non-positive
amounts) are left out rather than raising, so one bad historical formula
never breaks the scan. Inputs are only read, never modified.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from paintmix.data.records import field_value
from .signature import NAME_RATIO_SEPARATOR, PAIR_SEPARATOR, signature_for_formula
from .units import UnitTable

_log = logging.getLogger("paintmix.formula.duplicates")


@dataclass
class DuplicateGroup:
    signature: str
    records: List[Any] = field(default_factory=list)


def record_signature(record: Any, unit_table: Optional[UnitTable] = None) -> Optional[str]:
    return signature_for_formula(field_value(record, "formula") or "", unit_table)


def group_by_ratio_signature(
    records: Sequence[Any],
    unit_table: Optional[UnitTable] = None,
) -> Dict[str, List[Any]]:
    """
    Bucket records by ratio signature.

    Every signature that occurs gets a bucket (single-member ones included),
    in order of first appearance; each record lands in at most one bucket.
    """
    buckets: Dict[str, List[Any]] = {}
    skipped = 0
    for rec in records or []:
        sig = record_signature(rec, unit_table)
        if sig is None:
            skipped += 1
            continue
        buckets.setdefault(sig, []).append(rec)
    _log.debug(
        "grouped records=%d signatures=%d skipped=%d",
        len(records or []), len(buckets), skipped,
    )
    return buckets


def find_duplicate_groups(
    records: Sequence[Any],
    min_size: int = 2,
    unit_table: Optional[UnitTable] = None,
) -> List[DuplicateGroup]:
    """Groups with at least `min_size` ratio-equivalent records."""
    buckets = group_by_ratio_signature(records, unit_table)
    groups = [
        DuplicateGroup(signature=sig, records=list(recs))
        for sig, recs in buckets.items()
        if len(recs) >= max(1, min_size)
    ]
    _log.info("duplicate scan records=%d groups=%d", len(records or []), len(groups))
    return groups


def detect_on_save(
    record: Any,
    all_records: Sequence[Any],
    unit_table: Optional[UnitTable] = None,
) -> Optional[DuplicateGroup]:
    """
    Check a record about to be saved against the existing ones.

    Returns the group it would join (itself included), or None when the
    record has no signature or nothing else shares it. A stored copy of the
    same record (same id) is not counted twice.
    """
    sig = record_signature(record, unit_table)
    if sig is None:
        return None
    rec_id = field_value(record, "id")
    others = [
        r for r in all_records or []
        if not (rec_id is not None and field_value(r, "id") == rec_id)
        and r is not record
        and record_signature(r, unit_table) == sig
    ]
    if not others:
        return None
    return DuplicateGroup(signature=sig, records=others + [record])


def parse_ratio(signature: Optional[str]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Textual inverse of a signature, for display.

    "天蓝:1.0000|钛白:5.0000" -> {"items": [{"name": "天蓝", "ratio": 1.0},
                                           {"name": "钛白", "ratio": 5.0}]}
    """
    items: List[Dict[str, Any]] = []
    if not signature:
        return {"items": items}
    for part in signature.split(PAIR_SEPARATOR):
        name, sep, ratio_text = part.rpartition(NAME_RATIO_SEPARATOR)
        if not sep or not name:
            continue
        try:
            ratio = float(ratio_text)
        except ValueError:
            continue
        items.append({"name": name, "ratio": ratio})
    return {"items": items}
