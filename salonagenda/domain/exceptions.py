"""
Domain-specific exception hierarchy for the salon agenda.
"""


class AgendaError(Exception):
    """Base class for all application-level errors."""


class InvalidIntervalError(AgendaError, ValueError):
    """Raised when an interval does not end after it starts."""


class DataSourceError(AgendaError):
    """Raised when agenda data cannot be loaded or parsed."""
