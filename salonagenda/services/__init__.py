"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .dashboard import DashboardService, DataSourceProtocol, DayOverview

__all__ = ["DashboardService", "DataSourceProtocol", "DayOverview"]
