"""Errors raised while configuring or running a migration."""

from typing import Optional


class PorterError(Exception):
    """Base class for all migration errors."""

    entity: Optional[str] = None


class ConfigurationError(PorterError):
    """Configuration file, alias or connection settings are unusable."""


class UnknownPackage(PorterError):
    """A platform id is not registered as a source or target."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"Unknown {kind} package: {name}")


class MissingSourceStructure(PorterError):
    """A table or column the source requires is absent."""

    def __init__(self, table: str, column: Optional[str] = None):
        self.table = table
        self.column = column
        if column:
            message = f"Missing required column {table}.{column} in source database"
        else:
            message = f"Missing required table {table} in source database"
        super().__init__(message)


class MissingColumn(PorterError):
    """A row lacks a mapped column that has no default."""

    def __init__(self, entity: str, column: str):
        self.entity = entity
        self.column = column
        super().__init__(f"Column {column} is missing from {entity} results and has no default")


class UnsupportedTypeDescriptor(PorterError):
    """A type descriptor string cannot be resolved to a column type."""

    def __init__(self, descriptor):
        self.descriptor = descriptor
        super().__init__(f"Unsupported type descriptor: {descriptor!r}")


class UndeclaredColumn(PorterError):
    """A column map targets a column the table structure does not declare."""

    def __init__(self, entity: str, column: str):
        self.entity = entity
        self.column = column
        super().__init__(f"Column {column} is not declared in the {entity} structure")


class UnknownFilter(PorterError):
    """A column map names a filter that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown filter: {name}")


class ExtractionFailure(PorterError):
    """The source rejected an extraction query."""

    def __init__(self, entity: str, cause: Exception):
        self.entity = entity
        self.cause = cause
        super().__init__(f"Extraction failed for {entity}: {cause}")


class DestinationWriteFailure(PorterError):
    """The destination rejected a bulk insert or table definition."""

    def __init__(self, entity: str, cause: Exception):
        self.entity = entity
        self.cause = cause
        super().__init__(f"Write failed for {entity}: {cause}")


class FinalizationFailure(PorterError):
    """The optional finalization step failed."""

    def __init__(self, target: str, cause: Exception):
        self.target = target
        self.cause = cause
        super().__init__(f"Finalization failed for {target}: {cause}")
