"""
Domain layer - pure scheduling and analytics logic, no I/O.
"""

from .availability import AvailabilityCalculator, Slot, available_slots
from .conflicts import ConflictDetector, ConflictResult
from .exceptions import AgendaError, DataSourceError, InvalidIntervalError
from .models import (
    Appointment,
    AppointmentStatus,
    BlockedPeriod,
    BusinessHours,
    Client,
    Expense,
    Service,
    TimeRange,
)
from .occupancy import DayOccupancy, OccupancyAnalyzer, day_occupancy
from .overlap import overlaps
from .time_grid import generate_slots, iter_slots

__all__ = [
    "AgendaError",
    "Appointment",
    "AppointmentStatus",
    "AvailabilityCalculator",
    "BlockedPeriod",
    "BusinessHours",
    "Client",
    "ConflictDetector",
    "ConflictResult",
    "DataSourceError",
    "DayOccupancy",
    "Expense",
    "InvalidIntervalError",
    "OccupancyAnalyzer",
    "Service",
    "Slot",
    "TimeRange",
    "available_slots",
    "day_occupancy",
    "generate_slots",
    "iter_slots",
    "overlaps",
]
