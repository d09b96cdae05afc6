# paintmix/data/delta_e.py
"""
Delta E perceptual color differences between LAB colors.

Matching uses CIE76 (plain Euclidean distance in LAB) by default. CIE94 and
CIEDE2000 are available for callers that want a closer fit to perception.

Reference thresholds:
    0-1:   Not perceptible by human eye
    1-2:   Perceptible through close observation
    2-10:  Perceptible at a glance
    11-49: Colors are more similar than opposite
    100:   Colors are exact opposite
"""
from __future__ import annotations

import math
from typing import Callable, Dict, Sequence, Tuple

import numpy as np

Lab = Tuple[float, float, float]

METHOD_CIE76 = "76"
METHOD_CIE94 = "94"
METHOD_CIE2000 = "2000"


def delta_e_cie76(lab1: Lab, lab2: Lab) -> float:
    """sqrt(dL^2 + da^2 + db^2)"""
    L1, a1, b1 = lab1
    L2, a2, b2 = lab2
    return math.sqrt((L1 - L2) ** 2 + (a1 - a2) ** 2 + (b1 - b2) ** 2)


def delta_e_many_cie76(target: Lab, labs: Sequence[Lab]) -> np.ndarray:
    """CIE76 from one target to N colors at once; returns shape (N,)."""
    arr = np.asarray(labs, dtype=np.float64).reshape(-1, 3)
    diff = arr - np.asarray(target, dtype=np.float64)
    return np.sqrt(np.sum(diff * diff, axis=1))


# -----------------------------------------------------------------------------
# Shared chroma / hue helpers
# -----------------------------------------------------------------------------

_POW25_7 = 25.0 ** 7


def _chroma(a: float, b: float) -> float:
    return math.hypot(a, b)


def _hue_deg(a: float, b: float) -> float:
    """Hue angle in [0, 360); 0 for a neutral color."""
    if a == 0 and b == 0:
        return 0.0
    return math.degrees(math.atan2(b, a)) % 360


def _hue_delta(h1: float, h2: float) -> float:
    """Signed shortest rotation from h1 to h2, in [-180, 180]."""
    d = h2 - h1
    if d > 180:
        d -= 360
    elif d < -180:
        d += 360
    return d


def _hue_mean(h1: float, h2: float) -> float:
    """Mean of two hue angles on the circle."""
    if abs(h1 - h2) <= 180:
        return (h1 + h2) / 2
    if h1 + h2 < 360:
        return (h1 + h2 + 360) / 2
    return (h1 + h2 - 360) / 2


def _chroma_weight(c: float) -> float:
    # sqrt(C^7 / (C^7 + 25^7)), shared by the a' rescale and the rotation term
    c7 = c ** 7
    return math.sqrt(c7 / (c7 + _POW25_7))


def delta_e_cie94(
    lab1: Lab,
    lab2: Lab,
    kL: float = 1.0,
    K1: float = 0.045,
    K2: float = 0.015,
) -> float:
    """CIE94 with graphic-arts constants by default."""
    L1, a1, b1 = lab1
    L2, a2, b2 = lab2

    c1, c2 = _chroma(a1, b1), _chroma(a2, b2)
    dL = L1 - L2
    dC = c1 - c2
    dH_sq = max(0.0, (a1 - a2) ** 2 + (b1 - b2) ** 2 - dC ** 2)

    sc = 1 + K1 * c1
    sh = 1 + K2 * c1
    return math.sqrt((dL / kL) ** 2 + (dC / sc) ** 2 + dH_sq / sh ** 2)


def delta_e_cie2000(
    lab1: Lab,
    lab2: Lab,
    kL: float = 1.0,
    kC: float = 1.0,
    kH: float = 1.0,
) -> float:
    """
    CIEDE2000 difference (Sharma, Wu & Dalal formulation).

    Args:
        lab1, lab2: colors in LAB space
        kL, kC, kH: parametric weights, 1.0 for reference conditions
    """
    L1, a1, b1 = lab1
    L2, a2, b2 = lab2

    # G factor: rescale a' by mean chroma
    g = 0.5 * (1 - _chroma_weight((_chroma(a1, b1) + _chroma(a2, b2)) / 2))
    a1p, a2p = a1 * (1 + g), a2 * (1 + g)
    c1p, c2p = _chroma(a1p, b1), _chroma(a2p, b2)
    h1p, h2p = _hue_deg(a1p, b1), _hue_deg(a2p, b2)
    neutral = c1p * c2p == 0

    dLp = L2 - L1
    dCp = c2p - c1p
    dhp = 0.0 if neutral else _hue_delta(h1p, h2p)
    dHp = 2 * math.sqrt(c1p * c2p) * math.sin(math.radians(dhp / 2))

    L_bar = (L1 + L2) / 2
    C_bar = (c1p + c2p) / 2
    h_bar = h1p + h2p if neutral else _hue_mean(h1p, h2p)

    t = (1
         - 0.17 * math.cos(math.radians(h_bar - 30))
         + 0.24 * math.cos(math.radians(2 * h_bar))
         + 0.32 * math.cos(math.radians(3 * h_bar + 6))
         - 0.20 * math.cos(math.radians(4 * h_bar - 63)))

    sl = 1 + 0.015 * (L_bar - 50) ** 2 / math.sqrt(20 + (L_bar - 50) ** 2)
    sc = 1 + 0.045 * C_bar
    sh = 1 + 0.015 * C_bar * t
    # blue-region rotation
    rt = -2 * _chroma_weight(C_bar) * math.sin(math.radians(60 * math.exp(-((h_bar - 275) / 25) ** 2)))

    l_term = dLp / (kL * sl)
    c_term = dCp / (kC * sc)
    h_term = dHp / (kH * sh)
    return math.sqrt(l_term ** 2 + c_term ** 2 + h_term ** 2 + rt * c_term * h_term)


_METHODS: Dict[str, Callable[[Lab, Lab], float]] = {
    METHOD_CIE76: delta_e_cie76,
    METHOD_CIE94: delta_e_cie94,
    METHOD_CIE2000: delta_e_cie2000,
}


def normalize_method(method) -> str:
    """Accept '76', 76, 'cie76', 'CIE2000' ...; raise ValueError otherwise."""
    key = str(method).strip().lower()
    if key.startswith("cie"):
        key = key[3:]
    if key.startswith("de"):
        key = key[2:]
    if key not in _METHODS:
        raise ValueError(f"Unknown delta E method {method!r}; expected one of {sorted(_METHODS)}")
    return key


def delta_e(lab1: Lab, lab2: Lab, method=METHOD_CIE76) -> float:
    return _METHODS[normalize_method(method)](lab1, lab2)
