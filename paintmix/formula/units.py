# paintmix/formula/units.py
"""
Unit families for formula quantities.

Every recognized unit belongs to exactly one family and carries a multiplier
to that family's base unit. Ratio signatures are only built for formulas whose
units all resolve to the same family; there is no cross-family conversion.

The drop-to-gram approximation is kept here as a named constant because the
total-amount calculator needs it, but signatures never use it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
import logging

_log = logging.getLogger("paintmix.formula.units")


@dataclass(frozen=True)
class UnitInfo:
    family: str
    base: str
    factor: float  # multiplier to the family's base unit


UnitTable = Dict[str, UnitInfo]

# =============================================================================
# POLICY CONSTANTS
# =============================================================================

MASS_FAMILY = "mass"
VOLUME_FAMILY = "volume"
DROP_FAMILY = "drop"

# family -> (base unit, {unit: multiplier to base})
DEFAULT_UNIT_FAMILIES: Dict[str, Dict[str, Any]] = {
    MASS_FAMILY: {
        "base": "g",
        "units": {"g": 1.0, "克": 1.0, "kg": 1000.0, "千克": 1000.0, "mg": 0.001, "毫克": 0.001},
    },
    VOLUME_FAMILY: {
        "base": "ml",
        "units": {"ml": 1.0, "毫升": 1.0, "l": 1000.0, "升": 1000.0},
    },
    DROP_FAMILY: {
        "base": "滴",
        "units": {"滴": 1.0},
    },
}

# One drop of pigment is roughly 0.05 g
DROP_TO_GRAM = 0.05
# Density assumed to be 1 g/ml
ML_TO_GRAM = 1.0


def _unit_key(unit: str) -> str:
    # ASCII units are case-insensitive ("G", "ML"); CJK units have no case
    return (unit or "").strip().lower()


def build_unit_table(families: Mapping[str, Mapping[str, Any]]) -> UnitTable:
    """
    Build a unit lookup table from the family mapping shape used by
    DEFAULT_UNIT_FAMILIES and the YAML config.

    Raises ValueError when a unit is claimed by two families or a factor is
    not a positive number.
    """
    table: UnitTable = {}
    for family, family_def in families.items():
        base = str(family_def.get("base", "")).strip()
        units = family_def.get("units") or {}
        if not base or not units:
            raise ValueError(f"Unit family '{family}' needs a base unit and at least one unit.")
        for unit, factor in units.items():
            key = _unit_key(str(unit))
            factor = float(factor)
            if factor <= 0:
                raise ValueError(f"Unit '{unit}' in family '{family}' has non-positive factor {factor}.")
            if key in table and table[key].family != family:
                raise ValueError(
                    f"Unit '{unit}' is claimed by both '{table[key].family}' and '{family}'."
                )
            table[key] = UnitInfo(family=str(family), base=base, factor=factor)
    return table


DEFAULT_UNIT_TABLE: UnitTable = build_unit_table(DEFAULT_UNIT_FAMILIES)


def lookup_unit(unit: str, table: Optional[UnitTable] = None) -> Optional[UnitInfo]:
    """Return the UnitInfo for a unit suffix, or None if it is unrecognized."""
    table = DEFAULT_UNIT_TABLE if table is None else table
    return table.get(_unit_key(unit))


def to_grams(
    amount: float,
    unit: str,
    table: Optional[UnitTable] = None,
    drop_to_gram: float = DROP_TO_GRAM,
) -> float:
    """
    Approximate an amount in grams for totals.

    Volumes assume density 1, drops use `drop_to_gram`, unknown units count 1:1.
    """
    info = lookup_unit(unit, table)
    if info is None:
        _log.debug("unknown unit=%r counted 1:1 in total", unit)
        return amount
    base_amount = amount * info.factor
    if info.family == VOLUME_FAMILY:
        return base_amount * ML_TO_GRAM
    if info.family == DROP_FAMILY:
        return base_amount * drop_to_gram
    return base_amount
