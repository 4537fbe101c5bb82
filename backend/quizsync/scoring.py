from __future__ import annotations

import math


POINTS_BASE = 1000
POINTS_FLOOR = 100


def points(
    correct: bool,
    elapsed_ms: float,
    time_limit_ms: float,
    base: int = POINTS_BASE,
    floor: int = POINTS_FLOOR,
) -> int:
    """Award points for one answer.

    Faster correct answers earn up to ``base``; a correct answer never earns
    less than ``floor``, even with no time remaining. Wrong or missing
    answers earn nothing. Halves round up.
    """
    if not correct:
        return 0

    if time_limit_ms <= 0:
        raw = 0.0
    else:
        # scale before dividing so exact halves stay exact
        raw = (time_limit_ms - elapsed_ms) * base / time_limit_ms
        raw = min(float(base), max(0.0, raw))

    return max(floor, math.floor(raw + 0.5))
