"""
Bookable time points for a business day.
"""

from datetime import date
from typing import Iterator, List

from pendulum import DateTime

from .models import BusinessHours


def iter_slots(day: date, business_hours: BusinessHours, granularity_minutes: int | None = None) -> Iterator[DateTime]:
    """
    Yield the day's time points from opening to closing, both inclusive.

    Points are spaced by ``granularity_minutes`` (defaults to the configured
    slot size). The last point is always exactly the closing time, even when
    the window is not an exact multiple of the granularity.
    """
    step = granularity_minutes if granularity_minutes is not None else business_hours.slot_minutes
    if step <= 0:
        raise ValueError(f"Granularity must be greater than zero, got {step}")

    window = business_hours.window_for(day)
    current = window.start

    while current < window.end:
        yield current
        current = current.add(minutes=step)

    yield window.end


def generate_slots(day: date, business_hours: BusinessHours, granularity_minutes: int | None = None) -> List[DateTime]:
    """Return the ordered time points of ``iter_slots`` as a list."""
    return list(iter_slots(day, business_hours, granularity_minutes))
