# paintmix/data/color_space.py
"""
Color space conversions for a single color.

RGB (0-255 ints) is the pivot: HEX, CMYK and HSL convert to and from RGB, and
LAB is only ever derived from RGB (sRGB -> linear -> XYZ D65 -> CIE LAB).

Every function validates its input and raises ConversionError when a value is
malformed or out of range. RGB/CMYK/HSL results are rounded to ints and LAB
to 2 decimals so repeated conversions compare equal.
"""
from __future__ import annotations

import math
import re
from numbers import Real
from typing import Tuple

from paintmix.errors import ConversionError

RGB = Tuple[int, int, int]
CMYK = Tuple[int, int, int, int]
HSL = Tuple[int, int, int]
LAB = Tuple[float, float, float]

HEX_PATTERN = re.compile(r"^#?([0-9A-Fa-f]{6})$")

# D65 reference white
REF_X, REF_Y, REF_Z = 95.047, 100.000, 108.883

# CIE f(t) threshold, (6/29)^3
_EPSILON = (6 / 29) ** 3
_KAPPA_SLOPE = 1 / (3 * (6 / 29) ** 2)


# =============================================================================
# VALIDATION
# =============================================================================

def _is_number(v) -> bool:
    return isinstance(v, Real) and not isinstance(v, bool)


def _check_rgb(r, g, b) -> RGB:
    for name, v in (("r", r), ("g", g), ("b", b)):
        if not _is_number(v) or not math.isfinite(v) or int(v) != v:
            raise ConversionError(f"RGB channel {name}={v!r} is not an integer")
        if not 0 <= v <= 255:
            raise ConversionError(f"RGB channel {name}={v!r} outside 0-255")
    return int(r), int(g), int(b)


def _check_range(label: str, values) -> None:
    for name, v, top in values:
        if not _is_number(v) or v != v:
            raise ConversionError(f"{label} channel {name}={v!r} is not a number")
        if not 0 <= v <= top:
            raise ConversionError(f"{label} channel {name}={v!r} outside 0-{top}")


def _round(x: float) -> int:
    # half-up, so 126.5 -> 127 rather than banker's rounding
    return int(math.floor(x + 0.5))


# =============================================================================
# HEX
# =============================================================================

def rgb_to_hex(r: int, g: int, b: int) -> str:
    """(255, 0, 0) -> '#FF0000'"""
    r, g, b = _check_rgb(r, g, b)
    return "#{:02X}{:02X}{:02X}".format(r, g, b)


def hex_to_rgb(hex_code: str) -> RGB:
    """'#ff0000' / 'FF0000' -> (255, 0, 0). Exactly 6 hex digits."""
    if not isinstance(hex_code, str):
        raise ConversionError(f"HEX value {hex_code!r} is not a string")
    m = HEX_PATTERN.match(hex_code.strip())
    if not m:
        raise ConversionError(f"Invalid HEX color {hex_code!r}")
    digits = m.group(1)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


# =============================================================================
# CMYK
# =============================================================================

def rgb_to_cmyk(r: int, g: int, b: int) -> CMYK:
    r, g, b = _check_rgb(r, g, b)
    rn, gn, bn = r / 255.0, g / 255.0, b / 255.0
    k = 1 - max(rn, gn, bn)
    if 1 - k == 0:
        # pure black
        return 0, 0, 0, 100
    c = (1 - rn - k) / (1 - k)
    m = (1 - gn - k) / (1 - k)
    y = (1 - bn - k) / (1 - k)
    return _round(c * 100), _round(m * 100), _round(y * 100), _round(k * 100)


def cmyk_to_rgb(c: float, m: float, y: float, k: float) -> RGB:
    _check_range("CMYK", (("c", c, 100), ("m", m, 100), ("y", y, 100), ("k", k, 100)))
    c, m, y, k = c / 100.0, m / 100.0, y / 100.0, k / 100.0
    r = 255 * (1 - c) * (1 - k)
    g = 255 * (1 - m) * (1 - k)
    b = 255 * (1 - y) * (1 - k)
    return _round(r), _round(g), _round(b)


# =============================================================================
# HSL
# =============================================================================

def rgb_to_hsl(r: int, g: int, b: int) -> HSL:
    r, g, b = _check_rgb(r, g, b)
    rn, gn, bn = r / 255.0, g / 255.0, b / 255.0
    mx, mn = max(rn, gn, bn), min(rn, gn, bn)
    l = (mx + mn) / 2

    if mx == mn:
        h = s = 0.0
    else:
        d = mx - mn
        s = d / (2 - mx - mn) if l > 0.5 else d / (mx + mn)
        if mx == rn:
            h = ((gn - bn) / d + (6 if gn < bn else 0)) / 6
        elif mx == gn:
            h = ((bn - rn) / d + 2) / 6
        else:
            h = ((rn - gn) / d + 4) / 6

    return _round(h * 360) % 360, _round(s * 100), _round(l * 100)


def _hue_to_rgb(p: float, q: float, t: float) -> float:
    if t < 0:
        t += 1
    if t > 1:
        t -= 1
    if t < 1 / 6:
        return p + (q - p) * 6 * t
    if t < 1 / 2:
        return q
    if t < 2 / 3:
        return p + (q - p) * (2 / 3 - t) * 6
    return p


def hsl_to_rgb(h: float, s: float, l: float) -> RGB:
    _check_range("HSL", (("h", h, 360), ("s", s, 100), ("l", l, 100)))
    h, s, l = (h % 360) / 360.0, s / 100.0, l / 100.0

    if s == 0:
        r = g = b = l
    else:
        q = l * (1 + s) if l < 0.5 else l + s - l * s
        p = 2 * l - q
        r = _hue_to_rgb(p, q, h + 1 / 3)
        g = _hue_to_rgb(p, q, h)
        b = _hue_to_rgb(p, q, h - 1 / 3)

    return _round(r * 255), _round(g * 255), _round(b * 255)


# =============================================================================
# LAB (via XYZ, D65)
# =============================================================================

def rgb_to_xyz(rgb: RGB) -> Tuple[float, float, float]:
    """
    Convert RGB (0-255) to CIE XYZ (0-100 scale).
    Uses sRGB color space with D65 illuminant.
    """
    r, g, b = _check_rgb(*rgb)
    r, g, b = r / 255.0, g / 255.0, b / 255.0

    def gamma(c):
        if c > 0.04045:
            return ((c + 0.055) / 1.055) ** 2.4
        return c / 12.92

    r, g, b = gamma(r), gamma(g), gamma(b)

    x = r * 0.4124564 + g * 0.3575761 + b * 0.1804375
    y = r * 0.2126729 + g * 0.7151522 + b * 0.0721750
    z = r * 0.0193339 + g * 0.1191920 + b * 0.9503041

    return (x * 100, y * 100, z * 100)


def xyz_to_lab(xyz: Tuple[float, float, float]) -> LAB:
    """Convert CIE XYZ to CIE LAB against the D65 reference white (unrounded)."""
    x, y, z = xyz[0] / REF_X, xyz[1] / REF_Y, xyz[2] / REF_Z

    def f(t):
        if t > _EPSILON:
            return t ** (1 / 3)
        return t * _KAPPA_SLOPE + 4 / 29

    fx, fy, fz = f(x), f(y), f(z)

    L = (116 * fy) - 16
    a = 500 * (fx - fy)
    b = 200 * (fy - fz)
    return (L, a, b)


def rgb_to_lab(r: int, g: int, b: int) -> LAB:
    """(r, g, b) -> (L, a, b) rounded to 2 decimals."""
    L, a, b_ = xyz_to_lab(rgb_to_xyz((r, g, b)))
    # + 0.0 folds -0.0 into 0.0
    return (round(L, 2) + 0.0, round(a, 2) + 0.0, round(b_, 2) + 0.0)
