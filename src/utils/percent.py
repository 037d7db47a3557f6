"""Percentage helpers.

Displayed percentages round half away from zero (12.5 -> 13), which is what
users expect from a progress bar; the builtin round() would give 12.
"""

import math


def round_half_up(value: float) -> int:
    """Round a non-negative number to the nearest int, halves going up.

    Examples:
        >>> round_half_up(12.5)
        13
        >>> round_half_up(66.66)
        67
    """
    return math.floor(value + 0.5)


def percent(part: int, whole: int, cap: int = 100) -> int:
    """Integer percentage of `part` in `whole`, 0 when `whole` is 0.

    Examples:
        >>> percent(1, 3)
        33
        >>> percent(3, 0)
        0
    """
    if whole <= 0:
        return 0
    return min(round_half_up(part / whole * 100), cap)
