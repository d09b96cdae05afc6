# paintmix/formula/tokenizer.py
"""
Formula tokenizer.

A formula is free text alternating pigment names and quantities:

    "钛白 15g 天蓝 3g"  ->  [钛白 15 g, 天蓝 3 g]

A quantity token is digits/decimal points followed by a unit made of ASCII
letters or CJK characters. Anything else is a name token. Orphaned tokens
(a name with no quantity after it, a quantity with no name before it) are
dropped so that older hand-typed data still parses.

`is_quantity_token` is the single predicate shared with the rename engine.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .units import DROP_TO_GRAM, UnitTable, to_grams

QUANTITY_PATTERN = re.compile(r"^[0-9.]+[A-Za-z\u4e00-\u9fff]+$")
# Used only by validate_formula: the unit may be omitted ("15")
_LOOSE_QUANTITY_PATTERN = re.compile(r"^[0-9.]+[A-Za-z\u4e00-\u9fff]*$")
_SPLIT_PATTERN = re.compile(r"^([0-9.]+)(.*)$")
# Leading float, the way a lenient number parse reads "1.5.2" as 1.5
_LEADING_FLOAT = re.compile(r"^(\d+(?:\.\d*)?|\.\d+)")


@dataclass(frozen=True)
class FormulaEntry:
    name: str
    amount: float
    unit: str


def is_quantity_token(token: str) -> bool:
    """True for amount-with-unit tokens such as '3g', '5滴', '2.5ml'."""
    return bool(QUANTITY_PATTERN.match(token or ""))


def split_tokens(formula: Optional[str]) -> List[str]:
    if not formula:
        return []
    return str(formula).split()


def _parse_amount(number: str) -> float:
    m = _LEADING_FLOAT.match(number)
    if not m:
        return math.nan
    return float(m.group(1))


def split_quantity(token: str) -> Tuple[float, str]:
    """
    Split a quantity token into (amount, unit).

    '15g' -> (15.0, 'g'); '..g' -> (nan, 'g'). Raises ValueError if the token
    does not start with a number part.
    """
    m = _SPLIT_PATTERN.match(token or "")
    if not m:
        raise ValueError(f"Not a quantity token: {token!r}")
    return _parse_amount(m.group(1)), m.group(2)


def tokenize(formula: Optional[str]) -> List[FormulaEntry]:
    """
    Parse a formula string into ordered entries. Never raises.
    """
    tokens = split_tokens(formula)
    entries: List[FormulaEntry] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if nxt is not None and not is_quantity_token(tok) and is_quantity_token(nxt):
            amount, unit = split_quantity(nxt)
            entries.append(FormulaEntry(name=tok, amount=amount, unit=unit))
            i += 2
        else:
            i += 1
    return entries


def _format_amount(amount: float) -> str:
    if math.isfinite(amount) and float(amount).is_integer():
        return str(int(amount))
    return repr(float(amount))


def stringify_formula(entries: Iterable[FormulaEntry]) -> str:
    """Inverse of tokenize for well-formed entries: 'name 15g name 3g'."""
    return " ".join(f"{e.name} {_format_amount(e.amount)}{e.unit}" for e in entries)


def validate_formula(formula: Optional[str]) -> bool:
    """
    Strict format check for new input: pairs of name + quantity, nothing
    dangling. The tokenizer itself stays lenient.
    """
    tokens = split_tokens(formula)
    if not tokens or len(tokens) % 2 != 0:
        return False
    for i in range(0, len(tokens), 2):
        if is_quantity_token(tokens[i]):
            return False
        if not _LOOSE_QUANTITY_PATTERN.match(tokens[i + 1]):
            return False
    return True


def calculate_total_amount(
    formula: Optional[str],
    unit_table: Optional[UnitTable] = None,
    drop_to_gram: float = DROP_TO_GRAM,
) -> float:
    """Total formula weight in grams (approximate for volumes and drops)."""
    total = 0.0
    for entry in tokenize(formula):
        if not math.isfinite(entry.amount):
            continue
        total += to_grams(entry.amount, entry.unit, unit_table, drop_to_gram)
    return total
