"""Base target interface."""

import logging

from ..models.migration import ExportOperation
from ..sources.base import Package

logger = logging.getLogger(__name__)


class Target(Package):
    """
    A platform data is imported into.

    Target operations read the intermediate tables (`:_` resolves to the
    intermediate prefix) and write the platform's own tables. An operation
    whose `requires` tables were not written by this run's export is skipped,
    even when a table of that name is left over from an earlier run.
    """

    def should_run(self, operation: ExportOperation, model) -> bool:
        missing = [
            t for t in operation.requires
            if f"{model.prefix}{t}" not in model.state.reset_tables
        ]
        if missing:
            model.comment(
                f"Skipping {operation.entity}: {', '.join(missing)} not exported this run"
            )
            return False
        return True
