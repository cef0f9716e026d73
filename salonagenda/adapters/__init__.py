"""
Adapters layer - External data sources.
"""

from .json_store import JsonAgendaStore

__all__ = ["JsonAgendaStore"]
