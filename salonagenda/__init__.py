"""
Salon agenda - scheduling and analytics core for a single-provider booking dashboard.
"""

__version__ = "0.1.0"
