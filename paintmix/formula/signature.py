# paintmix/formula/signature.py
"""
Scale- and order-invariant ratio signatures for formulas.

    "钛白 15g 天蓝 3g"  ->  "天蓝:1.0000|钛白:5.0000"
    "钛白 5g 天蓝 1g"   ->  "天蓝:1.0000|钛白:5.0000"

Steps:
  1. every entry's unit must resolve to one and the same unit family
  2. amounts are converted to the family's base unit
  3. each amount is divided by the smallest one and rounded to 4 decimals
  4. entries are sorted by name and joined as name:ratio pairs with '|'

A formula that cannot be reduced safely (no entries, unknown unit, mixed
families, zero/negative/unparseable amount) has no signature (None) and is
never compared for equivalence.
"""
from __future__ import annotations

import math
import unicodedata
import logging
from typing import List, Optional, Sequence, Tuple

from .tokenizer import FormulaEntry, tokenize
from .units import DEFAULT_UNIT_TABLE, UnitTable, lookup_unit

_log = logging.getLogger("paintmix.formula.signature")

RATIO_DECIMALS = 4
PAIR_SEPARATOR = "|"
NAME_RATIO_SEPARATOR = ":"


def name_sort_key(name: str) -> Tuple[str, str]:
    """
    Deterministic name ordering shared by everything that builds signatures.

    Code point order on the NFC-normalized, casefolded name (ties broken by
    the raw name). Independent of the process locale, so CJK and ASCII names
    always sort the same way.
    """
    normalized = unicodedata.normalize("NFC", name)
    return (normalized.casefold(), normalized)


def _format_ratio(ratio: float) -> str:
    return f"{ratio:.{RATIO_DECIMALS}f}"


def build_signature(
    entries: Sequence[FormulaEntry],
    unit_table: Optional[UnitTable] = None,
) -> Optional[str]:
    """
    Build the ratio signature for tokenized entries, or None if undefined.
    """
    if not entries:
        return None
    table = DEFAULT_UNIT_TABLE if unit_table is None else unit_table

    family: Optional[str] = None
    converted: List[Tuple[str, float]] = []
    for entry in entries:
        amount = entry.amount
        if not isinstance(amount, (int, float)) or not math.isfinite(amount) or amount <= 0:
            _log.debug("no signature: bad amount %r for %r", amount, entry.name)
            return None
        info = lookup_unit(entry.unit, table)
        if info is None:
            _log.debug("no signature: unknown unit %r for %r", entry.unit, entry.name)
            return None
        if family is None:
            family = info.family
        elif info.family != family:
            _log.debug("no signature: mixed unit families %s/%s", family, info.family)
            return None
        converted.append((entry.name, amount * info.factor))

    min_amount = min(a for _, a in converted)
    if min_amount <= 0:
        return None

    pairs = [(name, round(amount / min_amount, RATIO_DECIMALS)) for name, amount in converted]
    pairs.sort(key=lambda p: (name_sort_key(p[0]), p[1]))
    return PAIR_SEPARATOR.join(
        f"{name}{NAME_RATIO_SEPARATOR}{_format_ratio(ratio)}" for name, ratio in pairs
    )


def signature_for_formula(formula: Optional[str], unit_table: Optional[UnitTable] = None) -> Optional[str]:
    """Convenience: tokenize then build_signature."""
    return build_signature(tokenize(formula), unit_table)
