# paintmix/data/rename_pigment.py
"""
Rename a pigment across every stored formula (cascading rename).

This module provides functionality to rename a pigment by:
  - Reading every (id, formula) pair through the storage handle
  - Replacing name tokens equal to the old name (quantity tokens are never
    inspected, so a pigment literally named like "5g" cannot clobber amounts)
  - Writing all changed formulas inside one transaction, rolled back as a
    whole if any write fails
"""
from __future__ import annotations

import logging
from typing import List, Tuple

from paintmix.errors import TransactionError
from paintmix.formula.tokenizer import is_quantity_token, split_tokens
from .interfaces import FormulaTransaction, RecordId
from .validators import validate_pigment_name

log = logging.getLogger("paintmix.data.rename_pigment")


def replace_name_in_formula(formula: str, old_name: str, new_name: str) -> str:
    """
    Replace every name token equal to `old_name` with `new_name`.

    Tokens are rejoined with single spaces. If nothing was replaced the input
    is returned untouched, so whitespace-only differences never count as a
    change.
    """
    if not formula or not old_name or old_name == new_name:
        return formula
    parts = split_tokens(formula)
    changed = False
    for i, tok in enumerate(parts):
        if is_quantity_token(tok):
            continue
        if tok == old_name:
            parts[i] = new_name
            changed = True
    return " ".join(parts) if changed else formula


def plan_rename(
    rows: List[Tuple[RecordId, str]], old_name: str, new_name: str
) -> List[Tuple[RecordId, str]]:
    """Return only the (id, new_formula) pairs whose text would change."""
    changes: List[Tuple[RecordId, str]] = []
    for record_id, formula in rows:
        original = (formula or "").strip()
        if not original:
            continue
        updated = replace_name_in_formula(original, old_name, new_name)
        if updated != original:
            changes.append((record_id, updated))
    return changes


def rename_across_formulas(tx: FormulaTransaction, old_name: str, new_name: str) -> int:
    """
    Rename `old_name` to `new_name` in every formula, atomically.

    Parameters
    ----------
    tx : FormulaTransaction
        Storage handle providing read_formulas/begin/write_formula/commit/rollback.
    old_name : str
        The pigment name currently used in formulas.
    new_name : str
        The replacement name; must be a valid pigment name.

    Returns
    -------
    int
        Number of formulas changed (0 for a no-op rename).

    Raises
    ------
    ValueError
        `new_name` is not a valid pigment name.
    TransactionError
        Reading or writing failed. Any partial writes were rolled back.
    """
    if not old_name or old_name == new_name:
        return 0

    v = validate_pigment_name(new_name)
    if not v.ok:
        raise ValueError(v.message)

    # The read happens inside the transaction so the changes are computed
    # from the same state the writes land on.
    rows: List[Tuple[RecordId, str]] = []
    changes: List[Tuple[RecordId, str]] = []
    try:
        tx.begin()
        rows = list(tx.read_formulas())
        changes = plan_rename(rows, old_name, new_name)
        for record_id, formula in changes:
            tx.write_formula(record_id, formula)
        if changes:
            tx.commit()
        else:
            tx.rollback()
    except Exception as e:
        try:
            tx.rollback()
        except Exception as rb_err:
            log.error("rollback after failed rename also failed: %s", rb_err)
        log.error(
            "rename aborted old=%s new=%s scanned=%d pending=%d: %s",
            old_name, new_name, len(rows), len(changes), e,
        )
        raise TransactionError(f"Failed to rename '{old_name}' to '{new_name}': {e}") from e

    log.info(
        "rename old=%s new=%s scanned=%d changed=%d",
        old_name, new_name, len(rows), len(changes),
    )
    return len(changes)
