"""
Fixed-grid candidate start times for a shop's operating window.
"""

import logging
from datetime import time
from typing import List

from .models import OperatingWindow, from_minutes, to_minutes

logger = logging.getLogger(__name__)

DEFAULT_GRANULARITY_MINUTES = 30


def generate_slots(
    window: OperatingWindow,
    granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES
) -> List[time]:
    """
    Generate every grid start time from ``opens`` (inclusive) to ``closes`` (exclusive).

    A slot only has to start before closing; whether it also has to finish
    before closing is shop policy and not enforced here.

    Example:
    Window: 08:00 - 10:15, granularity 30
    Result: [08:00, 08:30, 09:00, 09:30, 10:00]

    Args:
        window: The shop's operating window
        granularity_minutes: Spacing between consecutive slots

    Returns:
        Ascending list of start times. Empty when the window is misconfigured
        (opens at or after closing) or the granularity is not positive.
    """
    if granularity_minutes <= 0:
        logger.warning("Slot granularity must be positive, got %s; no slots generated", granularity_minutes)
        return []

    if not window.is_open():
        logger.warning("Operating window %s does not open before it closes; shop treated as closed", window)
        return []

    opens = to_minutes(window.opens)
    closes = to_minutes(window.closes)

    return [
        from_minutes(minute)
        for minute in range(opens, closes, granularity_minutes)
    ]
