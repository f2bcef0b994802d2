"""
Repository layer for DB access patterns.
"""

from opencast_bridge.repositories.series_mappings import (
    SeriesMappingRepositoryError,
    assert_core_series_mappings_table_exists,
    fetch_series_mappings_for_course,
)

__all__ = [
    "SeriesMappingRepositoryError",
    "assert_core_series_mappings_table_exists",
    "fetch_series_mappings_for_course",
]
