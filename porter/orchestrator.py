"""Migration orchestrator - runs a source export and optional target import."""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Set

from .config import Config
from .connection import Connection, ConnectionDescriptor
from .exceptions import FinalizationFailure, PorterError
from .models.migration import (
    INTERMEDIATE_PREFIX,
    MigrationStatus,
    OutputMode,
    RunRequest,
    RunState,
)
from .registry import postscript_factory, source_factory, target_factory
from .services.filters import FilterEngine
from .services.mapping_engine import MappingEngine
from .sources.base import Package
from .storage import DatabaseStorage, FileStorage
from .support import NEGOTIABLE_FLAGS

logger = logging.getLogger(__name__)


def format_elapsed(seconds: float) -> str:
    """'75.5' -> '1m 15s'."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, seconds = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {seconds}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {seconds}s"


def lost_entities(package: Package, suppressed: Set[str]) -> Set[str]:
    """Entities no operation would write any more once `suppressed` applies."""
    before = [op for op in package.all_operations() if op.is_active(package.suppressed)]
    after = [op for op in package.all_operations() if op.is_active(suppressed)]
    dropped = {op.entity for op in before if not op.is_active(suppressed)}
    return dropped - {op.entity for op in after}


class MigrationOrchestrator:
    """
    Orchestrates one migration run.

    Phases:
    - Init: resolve packages, connections and storage (errors raise)
    - Verifying: required source tables and columns exist
    - Exporting: source -> intermediate PORT_ tables (or CSV files)
    - Importing: intermediate tables -> target tables (database output only)
    - Finalizing: the target's postscript, when it declares one
    - Done or Failed
    """

    def __init__(
        self,
        config: Config,
        request: RunRequest,
        filters: Optional[FilterEngine] = None,
        batch_size: Optional[int] = None
    ):
        """
        Initialize the orchestrator and resolve everything the run needs.

        Args:
            config: Connection configuration
            request: What to migrate and where
            filters: Filter registry shared by both phases
            batch_size: Rows per bulk insert (defaults to the storage's)

        Raises:
            ConfigurationError: unknown alias or unusable connection
            UnknownPackage: unknown source or target platform id
        """
        self.config = config
        self.request = request
        self.filters = filters or FilterEngine()
        self.state = RunState(request=request)
        self.export_model: Optional[MappingEngine] = None
        self.import_model: Optional[MappingEngine] = None
        self._initialize(batch_size)

    def _initialize(self, batch_size: Optional[int]):
        """Init phase."""
        state = self.state
        request = self.request

        state.source = source_factory(request.package)
        if request.output_mode == OutputMode.DATABASE:
            state.target = target_factory(request.output)

        source_descriptor = ConnectionDescriptor.from_config(self.config, request.source)
        source_descriptor.url()
        state.source_connection = Connection(source_descriptor)

        if request.output_mode == OutputMode.FILE:
            state.storage = FileStorage(
                request.output_dir,
                batch_size=batch_size,
                reset_tables=state.reset_tables,
            )
        else:
            target_descriptor = ConnectionDescriptor.from_config(self.config, request.target or "")
            target_descriptor.url()
            state.target_connection = Connection(target_descriptor)
            state.storage = DatabaseStorage(
                state.target_connection,
                batch_size=batch_size,
                reset_tables=state.reset_tables,
            )

        logger.info(
            f"Initialized run: {request.package} from {request.source} to {request.output}"
        )

    def comment(self, message: str, error: bool = False) -> None:
        self.state.comments.append(message)
        if error:
            logger.error(message)
        else:
            logger.info(message)

    # Capability negotiation

    def set_modes(self) -> None:
        """
        Suppress optional features neither side supports.

        A flag is suppressed on both packages only when both read False and
        no operation left running reads an entity that suppression would
        stop producing.
        """
        source = self.state.source
        target = self.state.target
        if target is None:
            return

        source_flags = source.capability_flags()
        target_flags = target.capability_flags()

        for flag in NEGOTIABLE_FLAGS:
            if source_flags.get(flag) or target_flags.get(flag):
                continue

            conflicts = self.suppression_conflicts(flag)
            if conflicts:
                self.comment(f"Not suppressing {flag}: still read by {', '.join(conflicts)}")
                continue

            source.suppress(flag)
            target.suppress(flag)
            self.state.suppressed.add(flag)
            self.comment(f"Suppressed {flag} for {source.name} and {target.name}")

    def suppression_conflicts(self, flag: str) -> List[str]:
        """Operations that would lose an input if `flag` were suppressed."""
        source = self.state.source
        target = self.state.target

        source_after = source.suppressed | {flag}
        target_after = target.suppressed | {flag}
        lost_source = lost_entities(source, source_after)
        lost_target = lost_entities(target, target_after)

        conflicts = []
        for op in source.all_operations():
            if op.is_active(source_after) and lost_source.intersection(op.depends_on):
                conflicts.append(f"{source.name} {op.entity}")
        for op in target.all_operations():
            if op.is_active(target_after) and (lost_source | lost_target).intersection(op.depends_on):
                conflicts.append(f"{target.name} {op.entity}")
        return conflicts

    # Run

    def run(self) -> RunState:
        """
        Run every phase.

        Returns:
            RunState with final status, comments and row counts
        """
        state = self.state
        state.started_at = datetime.utcnow()

        try:
            self.set_modes()

            logger.info("=== VERIFYING ===")
            state.transition(MigrationStatus.VERIFYING)
            self._verify()

            logger.info("=== EXPORTING ===")
            state.transition(MigrationStatus.EXPORTING)
            self._export()

            if state.target is not None and not self.request.capture_only:
                logger.info("=== IMPORTING ===")
                state.transition(MigrationStatus.IMPORTING)
                self._import()

                postscript = postscript_factory(
                    self.request.output, state.storage, state.target_connection
                )
                if postscript is not None:
                    logger.info("=== FINALIZING ===")
                    state.transition(MigrationStatus.FINALIZING)
                    self._finalize(postscript)

            state.transition(MigrationStatus.DONE)

        except PorterError as e:
            self._fail(e)

        finally:
            state.completed_at = datetime.utcnow()
            self._report()
            self._close()

        return state

    def _verify(self):
        source = self.state.source
        connection = self.state.source_connection
        self.export_model = MappingEngine(
            connection,
            self.state.storage,
            self.state,
            prefix=connection.prefix or source.prefix,
            filters=self.filters,
        )
        self.export_model.verify_source(source.required_structure())

    def _export(self):
        state = self.state
        model = self.export_model

        state.storage.set_prefix(INTERMEDIATE_PREFIX)
        charset_table = state.source.charset_table()
        if charset_table:
            model.set_character_set(charset_table)

        state.storage.begin()
        state.source.run(model)
        state.storage.end()

        if self.request.capture_only:
            self.comment("\n".join(q + ";" for q in state.query_record))

    def _import(self):
        state = self.state
        target = state.target

        state.storage.set_prefix(state.target_connection.prefix or target.prefix)
        self.import_model = MappingEngine(
            state.target_connection,
            state.storage,
            state,
            prefix=INTERMEDIATE_PREFIX,
            filters=self.filters,
        )

        state.storage.begin()
        target.run(self.import_model)
        state.storage.end()

    def _finalize(self, postscript):
        try:
            postscript.run(self.import_model)
        except PorterError as e:
            if not isinstance(e, FinalizationFailure):
                e = FinalizationFailure(self.request.output, e)
            self.state.errors.append(self._error_entry(e))
            self.comment(str(e), error=True)

    def _fail(self, error: PorterError):
        state = self.state
        entry = self._error_entry(error)
        state.errors.append(entry)
        where = f"{entry['phase']} {entry['entity']}" if entry["entity"] else entry["phase"]
        self.comment(f"Failed while {where}: {error}", error=True)
        state.transition(MigrationStatus.FAILED)

    def _error_entry(self, error: PorterError) -> Dict[str, Optional[str]]:
        return {
            "phase": self.state.status.value,
            "entity": error.entity or self.state.current_entity,
            "type": error.__class__.__name__,
            "error": str(error),
            "timestamp": datetime.utcnow().isoformat(),
        }

    def _report(self):
        state = self.state
        total = sum(state.rows.values())
        self.comment(f"ROWS: {total} in {len(state.rows)} tables")
        self.comment(f"ELAPSED: {format_elapsed(state.duration_seconds or 0)}")

    def _close(self):
        for connection in (self.state.source_connection, self.state.target_connection):
            if connection is not None:
                connection.close()
