"""
Domain models shared across scripts and services.
"""

from opencast_bridge.models.series_mappings import SeriesMapping

__all__ = [
    "SeriesMapping",
]
