"""Base finalization step run after a target import."""

from abc import ABC, abstractmethod
import logging

from sqlalchemy.exc import SQLAlchemyError

from ..connection import Connection
from ..exceptions import FinalizationFailure
from ..storage.base import BaseStorage

logger = logging.getLogger(__name__)


class Postscript(ABC):
    """
    Destination-side data repair after import.

    Runs against the target connection only; it does not care which source
    the data came from.
    """

    name = "postscript"

    def __init__(self, storage: BaseStorage, connection: Connection):
        self.storage = storage
        self.connection = connection

    @property
    def prefix(self) -> str:
        return self.storage.prefix

    @abstractmethod
    def run(self, model) -> None:
        """Finalize the import."""
        pass

    def execute(self, sql: str) -> int:
        """
        Run one statement against the target, with '{prefix}' substituted.

        Returns:
            Number of rows the statement affected
        """
        statement = sql.format(prefix=self.prefix)
        try:
            with self.connection.engine.begin() as conn:
                result = conn.execution_options(no_parameters=True).exec_driver_sql(statement)
                return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Finalization statement failed: {e}")
            raise FinalizationFailure(self.name, e) from e
