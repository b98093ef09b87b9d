"""Service layer for the migration engine."""

from .filters import FilterEngine
from .mapping_engine import MappingEngine

__all__ = [
    "FilterEngine",
    "MappingEngine",
]
