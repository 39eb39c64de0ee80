"""
Small numeric helpers shared by the projection, cost and metric modules.
"""

from __future__ import annotations

import math
from typing import Iterable, List


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round halves towards +infinity (``floor(x + 0.5)``).

    Python's built-in ``round`` uses banker's rounding, so ``round(0.5) == 0``.
    Monthly figures must round ``0.5`` up consistently, including for negatives
    (``-0.5`` rounds to ``0``).
    """
    if digits:
        scale = 10.0 ** digits
        return math.floor(value * scale + 0.5) / scale
    return float(math.floor(value + 0.5))


def normalize_to_float_list(values: Iterable[float]) -> List[float]:
    """
    Normalize iterables (numpy, pandas, tuples of ints) to plain floats.

    Keep this in the engine so downstream adapters remain trivial and consistent.
    """
    return [float(v) for v in values]
