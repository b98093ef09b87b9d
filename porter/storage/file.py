"""Flat-file storage: one CSV per entity."""

import csv
import re
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, Set
import logging

from ..models.migration import INTERMEDIATE_PREFIX
from ..models.schema import TableStructure
from .base import BaseStorage, BatchWriter, Row

logger = logging.getLogger(__name__)

NULL_VALUE = r"\N"

# Text of the form \N, \\N, ... carries one extra backslash on disk.
ESCAPED_NULL = re.compile(r"\\+N")


def _format_value(value: Any) -> Any:
    """
    Render one value for CSV.

    Binary values are written as UTF-8 text; bytes that are not valid UTF-8
    become backslash escapes (b"\\xff" -> "\\xff") and read back as text.
    """
    if value is None:
        return NULL_VALUE
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="backslashreplace")
    if isinstance(value, str) and ESCAPED_NULL.fullmatch(value):
        return "\\" + value
    return value


def _parse_value(value: str) -> Optional[str]:
    if value == NULL_VALUE:
        return None
    if ESCAPED_NULL.fullmatch(value):
        return value[1:]
    return value


class FileStorage(BaseStorage):
    """Writes `<prefix><entity>.csv` files under an output directory."""

    def __init__(
        self,
        output_dir: str,
        prefix: str = INTERMEDIATE_PREFIX,
        batch_size: Optional[int] = None,
        reset_tables: Optional[Set[str]] = None
    ):
        super().__init__(prefix=prefix, batch_size=batch_size, reset_tables=reset_tables)
        self.output_dir = Path(output_dir)

    def path(self, name: str) -> Path:
        return self.output_dir / f"{name}.csv"

    def begin(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def create_table(self, name: str, structure: TableStructure) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path(name), "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(list(structure))

    @contextmanager
    def writer(self, name: str, structure: TableStructure) -> Iterator[BatchWriter]:
        columns = list(structure)
        with open(self.path(name), "a", newline="", encoding="utf-8") as f:
            out = csv.writer(f)

            def write(batch: List[Row]) -> None:
                out.writerows(
                    [_format_value(row.get(column)) for column in columns]
                    for row in batch
                )
                f.flush()

            yield write

    def exists(self, table: str, columns: Optional[Sequence[str]] = None) -> bool:
        path = self.path(self.table_name(table))
        if not path.exists():
            return False
        if not columns:
            return True

        with open(path, "r", newline="", encoding="utf-8") as f:
            header = next(csv.reader(f), [])
        existing = {column.lower() for column in header}
        return all(column.lower() in existing for column in columns)

    def read(self, table: str) -> List[Row]:
        """Read an entity file back as rows; NULL markers become None."""
        path = self.path(self.table_name(table))
        with open(path, "r", newline="", encoding="utf-8") as f:
            return [
                {k: _parse_value(v) for k, v in row.items()}
                for row in csv.DictReader(f)
            ]
