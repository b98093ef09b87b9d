"""Migration execution models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from .schema import ColumnMap, TableStructure

INTERMEDIATE_PREFIX = "PORT_"


class MigrationStatus(str, Enum):
    """Phase of a migration run."""
    INIT = "init"
    VERIFYING = "verifying"
    EXPORTING = "exporting"
    IMPORTING = "importing"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


TRANSITIONS: Dict[MigrationStatus, Tuple[MigrationStatus, ...]] = {
    MigrationStatus.INIT: (MigrationStatus.VERIFYING, MigrationStatus.FAILED),
    MigrationStatus.VERIFYING: (MigrationStatus.EXPORTING, MigrationStatus.FAILED),
    MigrationStatus.EXPORTING: (
        MigrationStatus.IMPORTING,
        MigrationStatus.FINALIZING,
        MigrationStatus.DONE,
        MigrationStatus.FAILED,
    ),
    MigrationStatus.IMPORTING: (
        MigrationStatus.FINALIZING,
        MigrationStatus.DONE,
        MigrationStatus.FAILED,
    ),
    MigrationStatus.FINALIZING: (MigrationStatus.DONE,),
    MigrationStatus.DONE: (),
    MigrationStatus.FAILED: (),
}


class OutputMode(str, Enum):
    """Where the run writes."""
    FILE = "file"
    DATABASE = "database"


@dataclass
class RunRequest:
    """What to migrate, from where, to where."""
    source: str  # Source connection alias
    package: str  # Source platform id (e.g. "webwiz")
    output: str = "file"  # "file" or a target platform id (e.g. "vanilla")
    target: Optional[str] = None  # Target connection alias; default connection when omitted
    output_dir: str = "./export"
    capture_only: bool = False

    @property
    def output_mode(self) -> OutputMode:
        return OutputMode.FILE if self.output == OutputMode.FILE.value else OutputMode.DATABASE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source": self.source,
            "package": self.package,
            "output": self.output,
            "target": self.target,
            "output_dir": self.output_dir,
            "capture_only": self.capture_only,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunRequest":
        """Create from dictionary representation."""
        return cls(
            source=data.get("source", ""),
            package=data.get("package", ""),
            output=data.get("output", "file"),
            target=data.get("target"),
            output_dir=data.get("output_dir", "./export"),
            capture_only=data.get("capture_only", False),
        )


QueryDeclaration = Union[str, Callable[[Any], str]]


@dataclass(frozen=True)
class ExportOperation:
    """
    One entity export: a query, how its columns map, and the table it fills.

    `feature` restricts the operation to runs where that capability is kept;
    `fallback_for` restricts it to runs where that capability was suppressed.
    """
    entity: str
    query: QueryDeclaration
    column_map: ColumnMap = field(default_factory=ColumnMap)
    structure: Optional[TableStructure] = None
    filters: Dict[str, Any] = field(default_factory=dict)
    feature: Optional[str] = None
    fallback_for: Optional[str] = None
    depends_on: Tuple[str, ...] = ()
    requires: Tuple[str, ...] = ()

    def __post_init__(self):
        # Declarations arrive as plain dicts; parse them once here.
        object.__setattr__(self, "column_map", ColumnMap.from_declaration(self.column_map))
        if self.structure is not None:
            object.__setattr__(self, "structure", TableStructure.from_declaration(self.structure))
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        object.__setattr__(self, "requires", tuple(self.requires))

    def is_active(self, suppressed: Set[str]) -> bool:
        """Whether this operation runs given the suppressed capability flags."""
        if self.feature and self.feature in suppressed:
            return False
        if self.fallback_for and self.fallback_for not in suppressed:
            return False
        return True

    def resolve_query(self, model: Any) -> str:
        if callable(self.query):
            return self.query(model)
        return self.query


@dataclass
class ExportStats:
    """Result of storing one entity."""
    entity: str
    rows: int = 0
    batches: int = 0
    memory: List[int] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def peak_memory(self) -> int:
        return max(self.memory) if self.memory else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "rows": self.rows,
            "batches": self.batches,
            "memory": self.memory,
            "peak_memory": self.peak_memory,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class RunState:
    """Working set of one migration run."""
    request: RunRequest
    status: MigrationStatus = MigrationStatus.INIT

    # Resolved collaborators
    source: Any = None
    target: Any = None
    source_connection: Any = None
    target_connection: Any = None
    storage: Any = None

    # Capability flags suppressed on both sides
    suppressed: Set[str] = field(default_factory=set)

    # Tables already dropped and recreated this run (prefixed names)
    reset_tables: Set[str] = field(default_factory=set)

    # Diagnostics
    comments: List[str] = field(default_factory=list)
    rows: Dict[str, int] = field(default_factory=dict)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    query_record: List[str] = field(default_factory=list)
    current_entity: Optional[str] = None

    # Timing
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def transition(self, status: MigrationStatus) -> None:
        """Move to the next phase."""
        if status not in TRANSITIONS[self.status]:
            raise RuntimeError(f"Invalid run transition: {self.status.value} -> {status.value}")
        self.status = status

    def add_rows(self, entity: str, count: int) -> None:
        self.rows[entity] = self.rows.get(entity, 0) + count

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "request": self.request.to_dict(),
            "status": self.status.value,
            "suppressed": sorted(self.suppressed),
            "comments": self.comments,
            "rows": self.rows,
            "errors": self.errors,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }
