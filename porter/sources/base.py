"""Base package interface for source and target platforms."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set
import logging

from ..models.migration import ExportOperation, ExportStats
from ..support import CapabilityFlags

logger = logging.getLogger(__name__)


class Package(ABC):
    """
    Base class for platform packages.

    A package is a static declaration: which features it supports, which
    tables it needs, and the ordered export operations that move its data.
    Capability suppression is the only state it carries.
    """

    SUPPORTED: Dict[str, Any] = {}

    def __init__(self):
        self.suppressed: Set[str] = set()
        self._operations: Optional[List[ExportOperation]] = None

    @property
    def name(self) -> str:
        return self.SUPPORTED.get("name", self.__class__.__name__)

    @property
    def prefix(self) -> str:
        """Default table prefix when the connection configures none."""
        return self.SUPPORTED.get("prefix", "")

    def capability_flags(self) -> CapabilityFlags:
        return CapabilityFlags.from_declaration(self.SUPPORTED)

    def suppress(self, flag: str) -> None:
        """Drop every operation tied to a capability flag from this run."""
        self.suppressed.add(flag)
        logger.info(f"{self.name}: suppressing {flag}")

    @abstractmethod
    def declare_operations(self) -> List[ExportOperation]:
        """
        Declare this package's export operations, in run order.

        Returns:
            List of ExportOperation
        """
        pass

    def all_operations(self) -> List[ExportOperation]:
        """Every declared operation, regardless of suppression."""
        if self._operations is None:
            self._operations = self.declare_operations()
        return self._operations

    def operations(self) -> List[ExportOperation]:
        """Operations that run given the current suppression."""
        return [op for op in self.all_operations() if op.is_active(self.suppressed)]

    def entities(self) -> List[str]:
        """Entity names this run will write, in order."""
        names: List[str] = []
        for op in self.operations():
            if op.entity not in names:
                names.append(op.entity)
        return names

    def before_run(self, model) -> None:
        """Hook run before the first operation."""
        pass

    def after_run(self, model) -> None:
        """Hook run after the last operation."""
        pass

    def should_run(self, operation: ExportOperation, model) -> bool:
        return True

    def run(self, model) -> Dict[str, ExportStats]:
        """
        Run every active operation through a mapping engine.

        Args:
            model: MappingEngine reading this package's tables

        Returns:
            Dictionary of entity -> stats of its last operation
        """
        results: Dict[str, ExportStats] = {}

        self.before_run(model)
        for operation in self.operations():
            if not self.should_run(operation, model):
                continue
            logger.info(f"{self.name}: exporting {operation.entity}")
            results[operation.entity] = model.run_operation(operation)
        self.after_run(model)

        return results


class Source(Package):
    """
    A platform data is exported from.

    `source_tables` maps each required source table (unprefixed) to the
    columns the operations read from it.
    """

    source_tables: Dict[str, List[str]] = {}

    def required_structure(self) -> Dict[str, List[str]]:
        return dict(self.source_tables)

    def charset_table(self) -> Optional[str]:
        """Table whose collation governs the read character set."""
        return self.SUPPORTED.get("charset_table")
