import math
from collections.abc import Iterable

from gymtracker.services.entities import SetEntry


def estimate_one_rep_max(weight: float, reps: int) -> float:
    """Epley estimate. A single rep is the weight itself; invalid input gives 0."""
    if not (math.isfinite(weight) and math.isfinite(reps)):
        return 0.0
    if reps == 1:
        return weight
    if reps <= 0 or weight <= 0:
        return 0.0
    return weight * (1 + reps / 30)


def best_set(sets: Iterable[SetEntry]) -> SetEntry | None:
    """Return the completed set with the highest estimated 1RM, or None.

    Only sets with weight > 0 and reps > 0 qualify. On a tie the first set
    encountered wins.
    """
    best: SetEntry | None = None
    best_1rm = 0.0
    for s in sets:
        if not (s.completed and s.weight > 0 and s.reps > 0):
            continue
        rm = estimate_one_rep_max(s.weight, s.reps)
        if best is None or rm > best_1rm:
            best = s
            best_1rm = rm
    return best


def total_volume(sets: Iterable[SetEntry]) -> float:
    """Return sum(weight * reps) over completed sets."""
    return sum(s.weight * s.reps for s in sets if s.completed)
