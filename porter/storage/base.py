"""Base storage interface for intermediate and destination writes."""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Set
import logging

import psutil

from ..models.migration import INTERMEDIATE_PREFIX, ExportStats
from ..models.schema import TableStructure

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
BatchWriter = Callable[[List[Row]], None]

_process = psutil.Process()


def memory_usage() -> int:
    """Resident memory of this process, in bytes."""
    return _process.memory_info().rss


class BatchBuffer:
    """
    Bounded row buffer that hands full batches to a writer.

    A batch is written as soon as the buffer reaches `size` rows; `flush()`
    writes whatever is left. Flushing an empty buffer does nothing.
    """

    def __init__(
        self,
        size: int,
        write: BatchWriter,
        sample: Callable[[], int] = memory_usage
    ):
        if size < 1:
            raise ValueError(f"Batch size must be positive: {size}")
        self.size = size
        self._write = write
        self._sample = sample
        self._rows: List[Row] = []
        self.flushes = 0
        self.total = 0
        self.memory: List[int] = []

    @property
    def pending(self) -> int:
        return len(self._rows)

    def add(self, row: Row) -> None:
        self._rows.append(row)
        if len(self._rows) >= self.size:
            self.flush()

    def flush(self) -> None:
        if not self._rows:
            return
        batch, self._rows = self._rows, []
        self._write(batch)
        self.flushes += 1
        self.total += len(batch)
        self.memory.append(self._sample())


class BaseStorage(ABC):
    """
    Base class for batch writers.

    A storage writes entity rows into `<prefix><entity>` tables (or files).
    Each prefixed table is dropped and recreated at most once per run; the
    names already reset live in `reset_tables`, which the orchestrator shares
    across the export and import phases.
    """

    INSERT_BATCH = 1000

    def __init__(
        self,
        prefix: str = INTERMEDIATE_PREFIX,
        batch_size: Optional[int] = None,
        reset_tables: Optional[Set[str]] = None
    ):
        """
        Initialize the storage.

        Args:
            prefix: Table name prefix for writes
            batch_size: Rows per bulk insert (defaults to INSERT_BATCH)
            reset_tables: Shared set of prefixed table names reset this run
        """
        self.prefix = prefix
        self.batch_size = batch_size or self.INSERT_BATCH
        self.reset_tables: Set[str] = reset_tables if reset_tables is not None else set()

    def set_prefix(self, prefix: str) -> None:
        self.prefix = prefix

    def table_name(self, entity: str) -> str:
        return f"{self.prefix}{entity}"

    def prepare(self, entity: str, structure: TableStructure) -> bool:
        """
        Create the destination for an entity, once per run.

        Args:
            entity: Entity name (unprefixed)
            structure: Destination columns and types

        Returns:
            True if the table was (re)created, False if it was already reset
            this run and rows will be appended
        """
        name = self.table_name(entity)
        if name in self.reset_tables:
            logger.debug(f"{name} already reset this run; appending")
            return False

        self.create_table(name, structure)
        self.reset_tables.add(name)
        logger.info(f"Created {name} ({len(structure)} columns)")
        return True

    def store(
        self,
        entity: str,
        structure: TableStructure,
        rows: Iterable[Row]
    ) -> ExportStats:
        """
        Write a stream of normalized rows in fixed-size batches.

        Args:
            entity: Entity name (unprefixed)
            structure: Destination columns and types
            rows: Normalized rows, consumed once

        Returns:
            ExportStats with row count, batch count and memory samples
        """
        name = self.table_name(entity)
        stats = ExportStats(entity=entity)
        stats.started_at = datetime.utcnow()

        with self.writer(name, structure) as write:
            buffer = BatchBuffer(self.batch_size, write)
            for row in rows:
                buffer.add(row)
            buffer.flush()

        stats.rows = buffer.total
        stats.batches = buffer.flushes
        stats.memory = buffer.memory + [memory_usage()]
        stats.completed_at = datetime.utcnow()

        logger.info(f"Stored {stats.rows} rows in {name} ({stats.batches} batches)")
        return stats

    @abstractmethod
    def create_table(self, name: str, structure: TableStructure) -> None:
        """Drop any existing `name` and create it from the structure."""
        pass

    @abstractmethod
    @contextmanager
    def writer(self, name: str, structure: TableStructure) -> Iterator[BatchWriter]:
        """Open `name` for writing and yield a callable that writes one batch."""
        pass

    @abstractmethod
    def exists(self, table: str, columns: Optional[Sequence[str]] = None) -> bool:
        """
        Check whether a destination table exists.

        Args:
            table: Entity name (unprefixed)
            columns: Columns that must all be present

        Returns:
            True if the table exists and has every requested column
        """
        pass

    def begin(self) -> None:
        """Called once before a phase writes."""
        pass

    def end(self) -> None:
        """Called once after a phase writes."""
        pass
