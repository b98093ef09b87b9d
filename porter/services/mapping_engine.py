"""Mapping engine - runs export operations from a reader into storage."""

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..connection import Connection
from ..exceptions import (
    ExtractionFailure,
    MissingColumn,
    MissingSourceStructure,
    UndeclaredColumn,
)
from ..models.migration import ExportOperation, ExportStats, RunState
from ..models.schema import ColumnMap, TableStructure
from ..models.structures import get_structure
from ..storage.base import BaseStorage
from .filters import FilterEngine, apply_chain

logger = logging.getLogger(__name__)

PREFIX_TOKEN = ":_"


class MappingEngine:
    """
    Streams query results through column maps into storage.

    One engine reads from one connection. During export it reads the source
    platform's tables (prefix = the source prefix); during import it reads
    the intermediate tables from the target connection.
    """

    def __init__(
        self,
        connection: Connection,
        storage: BaseStorage,
        state: RunState,
        prefix: str = "",
        filters: Optional[FilterEngine] = None
    ):
        """
        Initialize the mapping engine.

        Args:
            connection: Connection queries are read from
            storage: Batch writer rows are stored into
            state: Run state for comments, row counts and captured queries
            prefix: Table prefix substituted for ':_' in queries
            filters: Filter registry (defaults to the built-in filters)
        """
        self.connection = connection
        self.storage = storage
        self.state = state
        self.prefix = prefix
        self.filters = filters or FilterEngine()
        self.character_set: Optional[str] = None

    @property
    def capture_only(self) -> bool:
        return self.state.request.capture_only

    def substitute_prefix(self, sql: str) -> str:
        return sql.replace(PREFIX_TOKEN, self.prefix)

    # Export

    def export_table(
        self,
        entity: str,
        query: str,
        column_map: Optional[Mapping[str, Any]] = None,
        structure: Optional[Mapping[str, Any]] = None,
        filters: Optional[Dict[str, Any]] = None
    ) -> ExportStats:
        """
        Export one entity.

        Args:
            entity: Destination entity name (unprefixed)
            query: SQL with ':_' where the table prefix goes
            column_map: Source column -> target declarations
            structure: Destination structure (defaults to the canonical one)
            filters: Extra filters per source column, appended to the map's

        Returns:
            ExportStats for the rows written
        """
        column_map = ColumnMap.from_declaration(column_map)
        base = TableStructure.from_declaration(structure) if structure is not None else get_structure(entity)
        structure = base.with_columns(column_map.type_overrides())

        effective = column_map.effective(structure)
        for target in effective.targets:
            if target not in structure:
                raise UndeclaredColumn(entity, target)
        if filters:
            effective = effective.with_filters(filters, entity=entity)
        effective = effective.map_filters(self.filters.resolve)

        sql = self.substitute_prefix(query)
        self.state.current_entity = entity

        if self.capture_only:
            self.state.query_record.append(sql)
            return ExportStats(entity=entity)

        self.storage.prepare(entity, structure)

        rows = (
            self.normalize_row(effective, structure, row, entity=entity)
            for row in self._stream(entity, sql)
        )
        stats = self.storage.store(entity, structure, rows)

        name = self.storage.table_name(entity)
        self.state.add_rows(name, stats.rows)
        self.comment(
            f"{name}: {stats.rows} rows in {stats.duration_seconds or 0:.2f}s, "
            f"peak memory {stats.peak_memory // (1024 * 1024)}MB"
        )
        return stats

    def run_operation(self, operation: ExportOperation) -> ExportStats:
        """Run a declared operation."""
        return self.export_table(
            operation.entity,
            operation.resolve_query(self),
            column_map=operation.column_map,
            structure=operation.structure,
            filters=operation.filters,
        )

    def normalize_row(
        self,
        column_map: ColumnMap,
        structure: TableStructure,
        row: Mapping[str, Any],
        entity: str = ""
    ) -> Dict[str, Any]:
        """
        Project a source row onto the destination structure.

        Unmapped source columns are dropped; mapped ones are renamed and run
        through their filter chain. Columns the row does not provide fall back
        to the declared default, or None for optional columns.

        Raises:
            MissingColumn: a required column is absent and has no default
        """
        normalized: Dict[str, Any] = {column: None for column in structure}

        for source, spec in column_map.items():
            if source in row and row[source] is not None:
                value = apply_chain(spec.filters, row[source], row)
            elif spec.has_default:
                value = spec.default
            elif source in row:
                value = apply_chain(spec.filters, None, row)
            elif spec.required:
                raise MissingColumn(entity, source)
            else:
                continue
            normalized[spec.target] = value

        return normalized

    def _stream(self, entity: str, sql: str) -> Iterator[Dict[str, Any]]:
        """Yield rows one at a time from a server-side cursor."""
        conn = self.connection.open()
        try:
            if self.character_set:
                conn.exec_driver_sql(f"SET NAMES {self.character_set}")
            result = conn.execution_options(
                stream_results=True, no_parameters=True
            ).exec_driver_sql(sql)
            for row in result.mappings():
                yield dict(row)
        except SQLAlchemyError as e:
            logger.error(f"Query for {entity} failed: {e}")
            raise ExtractionFailure(entity, e) from e
        finally:
            conn.close()

    # Structure checks

    def verify_source(self, required: Mapping[str, Sequence[str]]) -> None:
        """
        Check that every required table and column exists in the reader.

        Args:
            required: Unprefixed table name -> required column names

        Raises:
            MissingSourceStructure: on the first absent table or column
        """
        try:
            inspector = self.connection.inspector()
            for table, columns in required.items():
                name = f"{self.prefix}{table}"
                if not inspector.has_table(name):
                    raise MissingSourceStructure(name)

                existing = {c["name"].lower() for c in inspector.get_columns(name)}
                for column in columns:
                    if column.lower() not in existing:
                        raise MissingSourceStructure(name, column)
        except SQLAlchemyError as e:
            raise ExtractionFailure("verify", e) from e

        logger.info(f"Verified {len(required)} source tables on {self.connection.alias}")

    def exists(self, table: str, columns: Optional[Sequence[str]] = None) -> bool:
        """Whether a destination table (and columns) exists."""
        return self.storage.exists(table, columns)

    def source_exists(self, table: str, columns: Optional[Sequence[str]] = None) -> bool:
        """Whether a table (and columns) exists on the reader connection."""
        name = f"{self.prefix}{table}"
        inspector = self.connection.inspector()
        if not inspector.has_table(name):
            return False
        if not columns:
            return True

        existing = {c["name"].lower() for c in inspector.get_columns(name)}
        return all(column.lower() in existing for column in columns)

    # Character set

    def get_character_set(self, table: str) -> Optional[str]:
        """
        Character set of a source table, from its collation.

        Only MySQL exposes per-table collations; other dialects return None.
        """
        if self.connection.dialect_name != "mysql":
            return None

        sql = text(
            "select TABLE_COLLATION from information_schema.TABLES "
            "where TABLE_SCHEMA = database() and TABLE_NAME = :name"
        )
        with self.connection.open() as conn:
            collation = conn.execute(sql, {"name": f"{self.prefix}{table}"}).scalar()

        if not collation:
            return None
        return collation.split("_")[0]

    def set_character_set(self, table: str) -> Optional[str]:
        """Read later queries in the governing table's character set."""
        charset = self.get_character_set(table)
        if charset:
            self.character_set = charset
            self.comment(f"Character set: {charset}")
        return charset

    # Misc

    def query(self, sql: str) -> None:
        """Run one or more ';'-separated statements on the reader connection."""
        statements = [s.strip() for s in self.substitute_prefix(sql).split(";") if s.strip()]

        if self.capture_only:
            self.state.query_record.extend(statements)
            return

        with self.connection.open() as conn:
            try:
                for statement in statements:
                    conn.execution_options(no_parameters=True).exec_driver_sql(statement)
                conn.commit()
            except SQLAlchemyError as e:
                conn.rollback()
                raise ExtractionFailure(self.state.current_entity or "query", e) from e

    def comment(self, message: str, error: bool = False) -> None:
        """Record a human-readable run comment."""
        self.state.comments.append(message)
        if error:
            logger.error(message)
        else:
            logger.info(message)

    def captured_queries(self) -> List[str]:
        return list(self.state.query_record)
