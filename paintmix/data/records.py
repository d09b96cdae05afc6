# paintmix/data/records.py
"""
Color values and custom color records.

ColorValue is a color given in any supported notation; ColorRecord is one
stored custom color (formula + color fields + category). Engine functions
also accept plain row mappings with the storage column names, read through
`field_value`, and never mutate what they are given.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from paintmix.errors import ConversionError
from .color_space import (
    CMYK,
    HSL,
    RGB,
    cmyk_to_rgb,
    hex_to_rgb,
    hsl_to_rgb,
    rgb_to_hex,
)

# Legacy placeholder for "not filled in"
EMPTY_FIELD_FLAG = "未填写"

# Storage column names
COLORS_HEADER = [
    "id",
    "color_code",
    "category_id",
    "formula",
    "rgb_r",
    "rgb_g",
    "rgb_b",
    "cmyk_c",
    "cmyk_m",
    "cmyk_y",
    "cmyk_k",
    "hex_color",
]

_NOTATION = re.compile(r"^\s*(rgb|cmyk|hsl)\s*\(([^)]*)\)\s*$", re.IGNORECASE)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        s = value.strip()
        return not s or s == EMPTY_FIELD_FLAG
    return False


def field_value(record: Any, name: str, default: Any = None) -> Any:
    """Read a field from a record object or a row mapping."""
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _to_number(value: Any) -> Optional[float]:
    if is_blank(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int_channel(value: Any) -> Optional[int]:
    n = _to_number(value)
    if n is None or n != n or not n.is_integer():
        return None
    return int(n)


def rgb_channels(value: Any) -> RGB:
    """Validate an explicit RGB value of unknown shape. Raises ConversionError."""
    try:
        channels = tuple(value)
    except TypeError:
        raise ConversionError(f"RGB value {value!r} is not a sequence") from None
    if len(channels) != 3:
        raise ConversionError(f"RGB needs 3 channels, got {value!r}")
    # validates type and range
    rgb_to_hex(*channels)
    return tuple(int(v) for v in channels)


# =============================================================================
# COLOR VALUE
# =============================================================================

@dataclass(frozen=True)
class ColorValue:
    """A color in one or more notations. RGB wins when several are present."""
    rgb: Optional[RGB] = None
    cmyk: Optional[CMYK] = None
    hex: Optional[str] = None
    hsl: Optional[HSL] = None

    def to_rgb(self) -> RGB:
        """Resolve to RGB (rgb -> hex -> cmyk -> hsl). Raises ConversionError."""
        if self.rgb is not None:
            return rgb_channels(self.rgb)
        if self.hex is not None:
            return hex_to_rgb(self.hex)
        if self.cmyk is not None:
            return cmyk_to_rgb(*self.cmyk)
        if self.hsl is not None:
            return hsl_to_rgb(*self.hsl)
        raise ConversionError("Color has no RGB, HEX, CMYK or HSL value")

    @classmethod
    def parse(cls, text: str) -> "ColorValue":
        """
        Parse '#RRGGBB', 'RRGGBB', 'rgb(r,g,b)', 'cmyk(c,m,y,k)' or 'hsl(h,s,l)'.
        """
        if not isinstance(text, str) or not text.strip():
            raise ConversionError(f"Empty color notation {text!r}")
        m = _NOTATION.match(text)
        if not m:
            # hex_to_rgb validates the digits
            hex_to_rgb(text)
            return cls(hex=text.strip())

        kind = m.group(1).lower()
        parts = [p.strip().rstrip("%") for p in m.group(2).split(",")]
        try:
            numbers = [float(p) for p in parts]
        except ValueError:
            raise ConversionError(f"Non-numeric channel in {text!r}") from None

        expected = 4 if kind == "cmyk" else 3
        if len(numbers) != expected:
            raise ConversionError(f"{kind} needs {expected} channels, got {len(numbers)}: {text!r}")

        if kind == "rgb":
            if not all(n.is_integer() for n in numbers):
                raise ConversionError(f"RGB channels must be integers: {text!r}")
            value = cls(rgb=tuple(int(n) for n in numbers))
        elif kind == "cmyk":
            value = cls(cmyk=tuple(numbers))
        else:
            value = cls(hsl=tuple(numbers))
        value.to_rgb()
        return value


# =============================================================================
# COLOR RECORD
# =============================================================================

@dataclass
class ColorRecord:
    """One stored custom color."""
    id: Any
    formula: str = ""
    color_code: str = ""
    category_id: Optional[int] = None
    rgb: Optional[Tuple[int, int, int]] = None
    hex: Optional[str] = None
    cmyk: Optional[Tuple[float, float, float, float]] = None
    hsl: Optional[Tuple[float, float, float]] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ColorRecord":
        """
        Build from a storage row. Missing or placeholder values become None;
        partially filled RGB/CMYK groups are dropped rather than guessed.
        """
        rgb_parts = [_to_int_channel(row.get(k)) for k in ("rgb_r", "rgb_g", "rgb_b")]
        cmyk_parts = [_to_number(row.get(k)) for k in ("cmyk_c", "cmyk_m", "cmyk_y", "cmyk_k")]
        hex_raw = row.get("hex_color", row.get("hex"))
        category = _to_number(row.get("category_id"))
        return cls(
            id=row.get("id"),
            formula=(row.get("formula") or "").strip(),
            color_code=(row.get("color_code") or "").strip(),
            category_id=int(category) if category is not None and math.isfinite(category) else None,
            rgb=tuple(rgb_parts) if all(p is not None for p in rgb_parts) else None,
            hex=None if is_blank(hex_raw) else str(hex_raw).strip(),
            cmyk=tuple(cmyk_parts) if all(p is not None for p in cmyk_parts) else None,
        )

    def to_row(self) -> Dict[str, str]:
        """Inverse of from_row for CSV storage (all values as strings)."""
        def s(v):
            return "" if v is None else str(v)

        row = {k: "" for k in COLORS_HEADER}
        row.update({
            "id": s(self.id),
            "color_code": self.color_code or "",
            "category_id": s(self.category_id),
            "formula": self.formula or "",
            "hex_color": self.hex or "",
        })
        if self.rgb is not None:
            row["rgb_r"], row["rgb_g"], row["rgb_b"] = (s(v) for v in self.rgb)
        if self.cmyk is not None:
            row["cmyk_c"], row["cmyk_m"], row["cmyk_y"], row["cmyk_k"] = (s(v) for v in self.cmyk)
        return row


def record_rgb_fields(record: Any) -> Tuple[Any, Optional[str]]:
    """
    Extract (explicit RGB, HEX string) from a ColorRecord or a storage row.
    The RGB value is returned as stored; see rgb_channels for validation.
    """
    if isinstance(record, Mapping):
        rgb_parts = [_to_int_channel(record.get(k)) for k in ("rgb_r", "rgb_g", "rgb_b")]
        rgb = tuple(rgb_parts) if all(p is not None for p in rgb_parts) else None
        if rgb is None:
            rgb = record.get("rgb")
        hex_raw = record.get("hex_color", record.get("hex"))
    else:
        rgb = getattr(record, "rgb", None)
        hex_raw = getattr(record, "hex", None)
    hex_code = None if is_blank(hex_raw) else str(hex_raw).strip()
    return rgb, hex_code
