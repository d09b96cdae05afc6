# paintmix/search/nearest.py
"""
Nearest-color search over a pool of custom color records.

The target (any supported notation) and every candidate are brought to RGB,
then LAB, and ranked by Delta E ascending:

- CIE76 (default): one vectorized numpy pass over the whole pool
- CIE94 / CIEDE2000: per-pair

A candidate's color is its explicit RGB, else its HEX, else the fallback
color of its category. Candidates with none of these, or with malformed
values, are skipped (logged) rather than failing the search. The sort is
stable, so equal distances keep the pool's order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from paintmix.data.color_space import LAB, RGB, hex_to_rgb, rgb_to_lab
from paintmix.data.delta_e import METHOD_CIE76, delta_e, delta_e_many_cie76, normalize_method
from paintmix.data.engine_config import CATEGORY_FALLBACK_RGB, DEFAULT_MATCH_LIMIT
from paintmix.data.records import ColorValue, field_value, record_rgb_fields, rgb_channels
from paintmix.errors import ConversionError

_log = logging.getLogger("paintmix.search.nearest")

Target = Union[ColorValue, Tuple[int, int, int], str]


@dataclass
class MatchResult:
    record: Any
    delta_e: float


def resolve_target_rgb(target: Target) -> RGB:
    """ColorValue, (r, g, b) or a notation string -> RGB. Raises ConversionError."""
    if isinstance(target, ColorValue):
        return target.to_rgb()
    if isinstance(target, str):
        return ColorValue.parse(target).to_rgb()
    if isinstance(target, (tuple, list)):
        return ColorValue(rgb=tuple(target)).to_rgb()
    raise ConversionError(f"Unsupported target color {target!r}")


def resolve_record_rgb(
    record: Any,
    category_fallbacks: Optional[Mapping[int, Tuple[int, int, int]]] = None,
) -> Optional[RGB]:
    """
    Best available RGB for a record: explicit RGB, else HEX, else the
    category fallback. Returns None when nothing resolves; raises
    ConversionError when a present value is malformed.
    """
    fallbacks = CATEGORY_FALLBACK_RGB if category_fallbacks is None else category_fallbacks
    rgb, hex_code = record_rgb_fields(record)
    if rgb is not None:
        return rgb_channels(rgb)
    if hex_code is not None:
        return hex_to_rgb(hex_code)
    category = field_value(record, "category_id")
    try:
        category = int(float(category)) if category not in (None, "") else None
    except (TypeError, ValueError, OverflowError):
        category = None
    if category is not None and category in fallbacks:
        return tuple(fallbacks[category])
    return None


def _candidate_labs(
    pool: Sequence[Any],
    category_fallbacks: Optional[Mapping[int, Tuple[int, int, int]]],
) -> Tuple[List[Any], List[LAB]]:
    kept: List[Any] = []
    labs: List[LAB] = []
    skipped_missing = 0
    skipped_bad = 0
    for rec in pool or []:
        try:
            rgb = resolve_record_rgb(rec, category_fallbacks)
            if rgb is None:
                skipped_missing += 1
                continue
            lab = rgb_to_lab(*rgb)
        except ConversionError as e:
            skipped_bad += 1
            _log.debug("skip record id=%s: %s", field_value(rec, "id"), e)
            continue
        kept.append(rec)
        labs.append(lab)
    if skipped_missing or skipped_bad:
        _log.info(
            "pool=%d usable=%d no_color=%d bad_color=%d",
            len(pool or []), len(kept), skipped_missing, skipped_bad,
        )
    return kept, labs


def find_nearest(
    target: Target,
    pool: Sequence[Any],
    limit: int = DEFAULT_MATCH_LIMIT,
    method: str = METHOD_CIE76,
    category_fallbacks: Optional[Mapping[int, Tuple[int, int, int]]] = None,
) -> List[MatchResult]:
    """
    Return up to `limit` pool records closest to `target`, by Delta E ascending.

    Args:
        target: ColorValue, (r, g, b) tuple, or notation string ('#FF0000',
            'cmyk(0,100,100,0)', 'hsl(0,100,50)', 'rgb(255,0,0)')
        pool: ColorRecords or storage rows; not modified
        limit: maximum results, clamped to at least 1
        method: '76' (default), '94' or '2000'
        category_fallbacks: category id -> RGB used when a record has no color

    Raises:
        ConversionError: the target itself is not a valid color
        ValueError: unknown method
    """
    method = normalize_method(method)
    limit = max(1, int(limit))

    target_lab = rgb_to_lab(*resolve_target_rgb(target))
    kept, labs = _candidate_labs(pool, category_fallbacks)
    if not kept:
        return []

    if method == METHOD_CIE76:
        distances = delta_e_many_cie76(target_lab, labs)
    else:
        distances = np.array([delta_e(target_lab, lab, method) for lab in labs], dtype=np.float64)

    order = np.argsort(distances, kind="stable")[:limit]
    results = [MatchResult(record=kept[i], delta_e=round(float(distances[i]), 2)) for i in order]
    _log.debug(
        "nearest target_lab=%s method=%s candidates=%d returned=%d",
        target_lab, method, len(kept), len(results),
    )
    return results


def match_summary(result: MatchResult) -> Dict[str, Any]:
    """Flat dict for display: id, color_code, formula, delta_e."""
    rec = result.record
    return {
        "id": field_value(rec, "id"),
        "color_code": field_value(rec, "color_code"),
        "formula": field_value(rec, "formula"),
        "delta_e": result.delta_e,
    }
