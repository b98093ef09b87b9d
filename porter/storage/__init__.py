"""Batch writers for intermediate and destination storage."""

from .base import BaseStorage, BatchBuffer, memory_usage
from .database import DatabaseStorage, build_table, column_type
from .file import FileStorage

__all__ = [
    "BaseStorage",
    "BatchBuffer",
    "memory_usage",
    "DatabaseStorage",
    "build_table",
    "column_type",
    "FileStorage",
]
