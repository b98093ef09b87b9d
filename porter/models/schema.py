"""Schema models: type descriptors, table structures and column maps."""

import re
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from ..exceptions import UndeclaredColumn, UnsupportedTypeDescriptor

DEFAULT_VARCHAR_LENGTH = 100

_VARCHAR_RE = re.compile(r"^(?:var)?char\((\d{1,3})\)")
_ENUM_RE = re.compile(r"^enum\((.*)\)$", re.DOTALL)


class ColumnKind(str, Enum):
    """Destination column types."""
    INTEGER = "integer"
    BIGINT = "bigint"
    VARCHAR = "varchar"
    VARBINARY = "varbinary"
    ENUM = "enum"
    TEXT = "text"
    DATETIME = "datetime"
    DATE = "date"
    FLOAT = "float"


@dataclass(frozen=True)
class TypeDescriptor:
    """A parsed column type."""
    kind: ColumnKind
    length: Optional[int] = None
    options: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, descriptor: Union[str, List[str], Tuple[str, ...], "TypeDescriptor"]) -> "TypeDescriptor":
        """
        Resolve a declared type into a descriptor.

        Args:
            descriptor: MySQL-style type string (e.g. 'varchar(50)', 'tinyint(1)')
                or a list of enum options

        Returns:
            TypeDescriptor
        """
        if isinstance(descriptor, TypeDescriptor):
            return descriptor

        # Enums are declared as a plain list of options.
        if isinstance(descriptor, (list, tuple)):
            if not descriptor:
                raise UnsupportedTypeDescriptor(descriptor)
            return cls(ColumnKind.ENUM, options=tuple(str(o) for o in descriptor))

        if not isinstance(descriptor, str) or not descriptor.strip():
            raise UnsupportedTypeDescriptor(descriptor)

        value = descriptor.strip().lower()

        enum_match = _ENUM_RE.match(value)
        if enum_match:
            options = tuple(
                o.strip().strip("'\"") for o in descriptor.strip()[5:-1].split(",") if o.strip()
            )
            if not options:
                raise UnsupportedTypeDescriptor(descriptor)
            return cls(ColumnKind.ENUM, options=options)

        if value.startswith("varchar") or value.startswith("char"):
            match = _VARCHAR_RE.match(value)
            length = int(match.group(1)) if match else 0
            return cls(ColumnKind.VARCHAR, length=length or DEFAULT_VARCHAR_LENGTH)

        if value.startswith("varbinary") or value in ("binary", "blob", "longblob", "mediumblob"):
            return cls(ColumnKind.VARBINARY)

        if value.startswith("bigint"):
            return cls(ColumnKind.BIGINT)

        if re.match(r"^(tiny|small|medium)?int(eger)?(\(\d+\))?( unsigned)?$", value):
            return cls(ColumnKind.INTEGER)

        if value in ("text", "tinytext", "mediumtext", "longtext"):
            return cls(ColumnKind.TEXT)

        if value in ("datetime", "timestamp"):
            return cls(ColumnKind.DATETIME)

        if value == "date":
            return cls(ColumnKind.DATE)

        if value in ("float", "double") or value.startswith("decimal"):
            return cls(ColumnKind.FLOAT)

        raise UnsupportedTypeDescriptor(descriptor)

    def describe(self) -> str:
        """Render back to a type string."""
        if self.kind == ColumnKind.VARCHAR:
            return f"varchar({self.length})"
        if self.kind == ColumnKind.ENUM:
            return "enum(" + ", ".join(self.options) + ")"
        return self.kind.value


class TableStructure(Mapping[str, TypeDescriptor]):
    """Ordered destination columns and their types for one entity."""

    def __init__(self, columns: Optional[Mapping[str, Any]] = None):
        self._columns: "OrderedDict[str, TypeDescriptor]" = OrderedDict()
        for name, descriptor in (columns or {}).items():
            self._columns[name] = TypeDescriptor.parse(descriptor)

    @classmethod
    def from_declaration(cls, declaration: Union["TableStructure", Mapping[str, Any]]) -> "TableStructure":
        if isinstance(declaration, TableStructure):
            return declaration
        return cls(declaration)

    def __getitem__(self, name: str) -> TypeDescriptor:
        return self._columns[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def with_columns(self, overrides: Mapping[str, TypeDescriptor]) -> "TableStructure":
        """Copy with columns added or retyped."""
        merged = TableStructure(self._columns)
        for name, descriptor in overrides.items():
            merged._columns[name] = TypeDescriptor.parse(descriptor)
        return merged

    def to_dict(self) -> Dict[str, str]:
        return {name: d.describe() for name, d in self._columns.items()}

    def __repr__(self) -> str:
        return f"TableStructure({self.to_dict()!r})"


_NO_DEFAULT = object()

FilterDeclaration = Union[str, Callable[..., Any]]


@dataclass(frozen=True)
class ColumnSpec:
    """How one source column lands in the destination row."""
    source: str
    target: str
    type: Optional[TypeDescriptor] = None
    filters: Tuple[FilterDeclaration, ...] = ()
    default: Any = _NO_DEFAULT
    required: bool = True

    @property
    def has_default(self) -> bool:
        return self.default is not _NO_DEFAULT

    @classmethod
    def from_declaration(cls, source: str, declaration: Union[str, Dict[str, Any]]) -> "ColumnSpec":
        """
        Parse one map entry.

        Entries are either a bare target column name or a dict
        {'Column': target, 'Type': descriptor, 'Filter': name(s), 'Default': value}.
        """
        if isinstance(declaration, str):
            return cls(source=source, target=declaration)

        target = declaration.get("Column", source)
        type_declaration = declaration.get("Type")
        filters = declaration.get("Filter")
        if filters is None:
            filters = ()
        elif isinstance(filters, (str, bytes)) or callable(filters):
            filters = (filters,)

        return cls(
            source=source,
            target=target,
            type=TypeDescriptor.parse(type_declaration) if type_declaration is not None else None,
            filters=tuple(filters),
            default=declaration.get("Default", _NO_DEFAULT),
        )


class ColumnMap(Mapping[str, ColumnSpec]):
    """Ordered source column -> ColumnSpec rules for one entity."""

    def __init__(self, specs: Optional[Iterable[ColumnSpec]] = None):
        self._specs: "OrderedDict[str, ColumnSpec]" = OrderedDict()
        for spec in specs or ():
            self._specs[spec.source] = spec

    @classmethod
    def from_declaration(cls, declaration: Union["ColumnMap", Mapping[str, Any], None]) -> "ColumnMap":
        if isinstance(declaration, ColumnMap):
            return declaration
        return cls(
            ColumnSpec.from_declaration(source, entry)
            for source, entry in (declaration or {}).items()
        )

    def __getitem__(self, source: str) -> ColumnSpec:
        return self._specs[source]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    @property
    def targets(self) -> List[str]:
        return [spec.target for spec in self._specs.values()]

    def type_overrides(self) -> Dict[str, TypeDescriptor]:
        """Target columns whose type is declared on the map itself."""
        return {spec.target: spec.type for spec in self._specs.values() if spec.type is not None}

    def effective(self, structure: TableStructure) -> "ColumnMap":
        """
        Declared entries plus optional identity entries for every structure
        column no declared entry targets.
        """
        mapped = set(self.targets)
        specs = list(self._specs.values())
        for column in structure:
            if column not in mapped and column not in self._specs:
                specs.append(ColumnSpec(source=column, target=column, required=False))
        return ColumnMap(specs)

    def with_filters(self, extra: Mapping[str, Any], entity: str = "") -> "ColumnMap":
        """
        Append filters to the chains of the named source columns.

        Raises:
            UndeclaredColumn: a key names no column of this map
        """
        for source in extra:
            if source not in self._specs:
                raise UndeclaredColumn(entity, source)

        specs = []
        for source, spec in self._specs.items():
            added = extra.get(source)
            if added is None:
                specs.append(spec)
                continue
            if isinstance(added, str) or callable(added):
                added = (added,)
            specs.append(replace(spec, filters=spec.filters + tuple(added)))
        return ColumnMap(specs)

    def map_filters(self, resolve: Callable[[FilterDeclaration], Callable[..., Any]]) -> "ColumnMap":
        """Copy with every filter declaration resolved to a callable."""
        return ColumnMap(
            replace(spec, filters=tuple(resolve(f) for f in spec.filters))
            for spec in self._specs.values()
        )
