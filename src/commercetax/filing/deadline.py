"""The monthly filing deadline, shared by submissions and every backfill trigger."""

import calendar
from datetime import date


def effective_deadline(deadline_day: int, today: date) -> int:
    """Deadline day clamped to the length of ``today``'s month."""
    return min(deadline_day, calendar.monthrange(today.year, today.month)[1])


def is_due(today: date, deadline_day: int) -> bool:
    """True once the deadline of the current month has been reached."""
    return today.day >= effective_deadline(deadline_day, today)
