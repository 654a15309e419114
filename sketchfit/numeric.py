"""Rounding shared by the coordinate grid and the display grammar."""

from __future__ import annotations

import numpy as np


def round_half_up(value: float, decimals: int = 0) -> float:
    """Round like ``Math.round(v * 10**d) / 10**d``: halves go toward +inf.

    NaN and infinities pass through unchanged.
    """
    factor = 10.0 ** decimals
    return float(np.floor(value * factor + 0.5) / factor)
