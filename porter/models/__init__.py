"""Data models for the migration application."""

from .schema import (
    ColumnKind,
    TypeDescriptor,
    TableStructure,
    ColumnSpec,
    ColumnMap,
)
from .migration import (
    INTERMEDIATE_PREFIX,
    MigrationStatus,
    OutputMode,
    RunRequest,
    ExportOperation,
    ExportStats,
    RunState,
)
from .structures import EXPORT_STRUCTURE, get_structure

__all__ = [
    "ColumnKind",
    "TypeDescriptor",
    "TableStructure",
    "ColumnSpec",
    "ColumnMap",
    "INTERMEDIATE_PREFIX",
    "MigrationStatus",
    "OutputMode",
    "RunRequest",
    "ExportOperation",
    "ExportStats",
    "RunState",
    "EXPORT_STRUCTURE",
    "get_structure",
]
