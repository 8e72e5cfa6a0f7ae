"""
Nearest free alternatives for a desired but unavailable start time.
"""

from datetime import time
from typing import Iterable, List, Sequence

from .exceptions import InvalidInputError
from .models import to_minutes

DEFAULT_SUGGESTION_COUNT = 3


def suggest_nearest_slots(
    desired_start: time,
    occupied: Iterable[time],
    grid: Sequence[time],
    count: int = DEFAULT_SUGGESTION_COUNT
) -> List[time]:
    """
    Rank free grid slots by distance from ``desired_start`` and return the top ``count``.

    Example:
    Desired: 09:00 (occupied)
    Free:    [08:00, 08:30, 10:00, 10:30]
    Top 2:   [08:30, 08:00]  (08:00 and 10:00 tie at 60 min; earlier grid entry first)

    Args:
        desired_start: The start time the client asked for
        occupied: Start times already taken, including the desired one
        grid: Candidate start times in ascending order
        count: Maximum number of suggestions

    Returns:
        Up to ``count`` free start times, closest first. Empty when nothing
        is free; callers present that as "no alternatives".
    """
    if count < 0:
        raise InvalidInputError(f"Suggestion count cannot be negative, got {count}")

    occupied_minutes = {to_minutes(slot) for slot in occupied}

    available: List[time] = []
    seen: set[int] = set()
    for slot in grid:
        minute = to_minutes(slot)
        if minute in occupied_minutes or minute in seen:
            continue
        seen.add(minute)
        available.append(slot)

    desired_minute = to_minutes(desired_start)
    # sorted() is stable, so equal distances keep their grid order
    ranked = sorted(available, key=lambda slot: abs(to_minutes(slot) - desired_minute))

    return ranked[:count]
