"""
Compatibility scoring between two participants' answers.

The score is the agreement rate over the questions both participants have
answered, as an integer percentage.  Questions only one side answered do not
count against either of them.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero (50.5 -> 51)."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compatibility_score(a: Mapping[int, str], b: Mapping[int, str]) -> int:
    """Compute a compatibility score in [0, 100] between two answer sets.

    Returns 0 when the sets share no question ids.  Symmetric in its
    arguments; an answer set scored against itself yields 100.
    """
    common = a.keys() & b.keys()
    if not common:
        return 0
    matches = sum(1 for k in common if a[k] == b[k])
    # Decimal keeps x.5 boundaries exact before rounding
    return round_half_up(Decimal(100 * matches) / Decimal(len(common)))
