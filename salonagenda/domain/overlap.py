"""
Interval overlap predicate shared by conflict detection and occupancy.
"""

from datetime import datetime

from .exceptions import InvalidIntervalError


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """
    Check whether two intervals intersect.

    Intervals are half-open ``[start, end)``, so touching intervals do not
    overlap. Two intervals that begin at the same instant always overlap,
    whatever their lengths. The clauses are listed pairwise so the result
    does not depend on argument order.

    Raises:
        InvalidIntervalError: If either interval ends before it starts
    """
    if a_end < a_start:
        raise InvalidIntervalError(f"Interval ends at {a_end} before it starts at {a_start}")
    if b_end < b_start:
        raise InvalidIntervalError(f"Interval ends at {b_end} before it starts at {b_start}")

    if a_start == b_start:
        return True

    a_starts_inside_b = b_start < a_start < b_end
    b_starts_inside_a = a_start < b_start < a_end
    a_ends_inside_b = b_start < a_end < b_end
    b_ends_inside_a = a_start < b_end < a_end
    a_contains_b = a_start <= b_start and b_end <= a_end
    b_contains_a = b_start <= a_start and a_end <= b_end

    return (
        a_starts_inside_b
        or b_starts_inside_a
        or a_ends_inside_b
        or b_ends_inside_a
        or a_contains_b
        or b_contains_a
    )
