"""Database storage: bulk inserts through SQLAlchemy Core."""

from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence, Set
import logging

from dateutil import parser as date_parser
from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeDecorator, TypeEngine

from ..connection import Connection
from ..exceptions import DestinationWriteFailure
from ..models.migration import INTERMEDIATE_PREFIX
from ..models.schema import ColumnKind, TableStructure, TypeDescriptor
from .base import BaseStorage, BatchWriter, Row

logger = logging.getLogger(__name__)


def _parse_date(value: Any):
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text or text.startswith("0000-00-00"):
        return None
    return date_parser.parse(text)


class LenientDateTime(TypeDecorator):
    """Datetime column that also accepts date strings."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Any, dialect):
        return _parse_date(value)


class LenientDate(TypeDecorator):
    """Date column that also accepts date strings."""

    impl = Date
    cache_ok = True

    def process_bind_param(self, value: Any, dialect):
        value = _parse_date(value)
        if hasattr(value, "date"):
            return value.date()
        return value


class LenientBinary(TypeDecorator):
    """Binary column that stores text as UTF-8."""

    impl = LargeBinary
    cache_ok = True

    def process_bind_param(self, value: Any, dialect):
        if isinstance(value, str):
            return value.encode("utf-8")
        return value


def column_type(descriptor: TypeDescriptor) -> TypeEngine:
    """Translate a parsed type descriptor into a SQLAlchemy column type."""
    kind = descriptor.kind
    if kind == ColumnKind.INTEGER:
        return Integer()
    if kind == ColumnKind.BIGINT:
        return BigInteger()
    if kind == ColumnKind.VARCHAR:
        return String(descriptor.length)
    if kind == ColumnKind.VARBINARY:
        return LenientBinary()
    if kind == ColumnKind.ENUM:
        return Enum(*descriptor.options, native_enum=False, create_constraint=True)
    if kind == ColumnKind.TEXT:
        return Text()
    if kind == ColumnKind.DATETIME:
        return LenientDateTime()
    if kind == ColumnKind.DATE:
        return LenientDate()
    if kind == ColumnKind.FLOAT:
        return Float()
    raise ValueError(f"Unhandled column kind: {kind}")


def build_table(name: str, structure: TableStructure, metadata: Optional[MetaData] = None) -> Table:
    """Table definition for a structure; every column is nullable."""
    metadata = metadata if metadata is not None else MetaData()
    columns = [
        Column(column, column_type(descriptor), nullable=True)
        for column, descriptor in structure.items()
    ]
    return Table(name, metadata, *columns)


class DatabaseStorage(BaseStorage):
    """Writes entity rows into tables on a live database connection."""

    def __init__(
        self,
        connection: Connection,
        prefix: str = INTERMEDIATE_PREFIX,
        batch_size: Optional[int] = None,
        reset_tables: Optional[Set[str]] = None
    ):
        super().__init__(prefix=prefix, batch_size=batch_size, reset_tables=reset_tables)
        self.connection = connection

    def create_table(self, name: str, structure: TableStructure) -> None:
        table = build_table(name, structure)
        try:
            with self.connection.engine.begin() as conn:
                table.drop(conn, checkfirst=True)
                table.create(conn)
        except SQLAlchemyError as e:
            raise DestinationWriteFailure(name, e) from e

    @contextmanager
    def writer(self, name: str, structure: TableStructure) -> Iterator[BatchWriter]:
        # A prior streaming read may still hold the driver connection.
        self.connection.reset()
        table = build_table(name, structure)
        conn = self.connection.open()

        def write(batch: List[Row]) -> None:
            try:
                conn.execute(table.insert(), batch)
                conn.commit()
            except SQLAlchemyError as e:
                conn.rollback()
                logger.error(f"Bulk insert into {name} failed: {e}")
                raise DestinationWriteFailure(name, e) from e

        try:
            yield write
        finally:
            conn.close()

    def exists(self, table: str, columns: Optional[Sequence[str]] = None) -> bool:
        name = self.table_name(table)
        inspector = self.connection.inspector()
        if not inspector.has_table(name):
            return False
        if not columns:
            return True

        existing = {c["name"].lower() for c in inspector.get_columns(name)}
        return all(column.lower() in existing for column in columns)

    def count(self, table: str) -> int:
        """Row count of a destination table."""
        name = self.table_name(table)
        with self.connection.open() as conn:
            return conn.exec_driver_sql(f"select count(*) from {name}").scalar()
