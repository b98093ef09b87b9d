"""Named connections and their SQLAlchemy engines."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import URL, Connection as SAConnection, Engine
from sqlalchemy.engine.reflection import Inspector
from sqlalchemy.pool import NullPool

from .config import Config, ConnectionConfig
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Config adapter name -> SQLAlchemy driver name
DRIVERS = {
    "mysql": "mysql+pymysql",
    "mariadb": "mysql+pymysql",
    "pgsql": "postgresql+psycopg",
    "postgres": "postgresql+psycopg",
    "postgresql": "postgresql+psycopg",
    "sqlite": "sqlite",
}

SQLITE_BUSY_TIMEOUT_MS = 30000


class ConnectionKind(str, Enum):
    """Kinds of connection a config entry can describe."""
    DATABASE = "database"
    FILE = "file"
    API = "api"


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Resolved connection parameters for one alias."""
    alias: str
    kind: ConnectionKind = ConnectionKind.DATABASE
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    @classmethod
    def from_config(cls, config: Config, alias: str = "") -> "ConnectionDescriptor":
        """Resolve an alias (or the default connection when empty)."""
        if alias:
            entry = config.get_connection_alias(alias)
        else:
            entry = config.get_default_connection()
        return cls.from_entry(entry)

    @classmethod
    def from_entry(cls, entry: ConnectionConfig) -> "ConnectionDescriptor":
        """Create from a validated config entry."""
        kind = entry.type.lower()
        if kind == "files":
            kind = ConnectionKind.FILE.value
        try:
            connection_kind = ConnectionKind(kind)
        except ValueError:
            raise ConfigurationError(f"Invalid connection type for {entry.alias}: {entry.type}")

        return cls(
            alias=entry.alias,
            kind=connection_kind,
            parameters=entry.model_dump(exclude={"alias", "type"}),
        )

    @property
    def prefix(self) -> str:
        return self.parameters.get("prefix") or ""

    @property
    def adapter(self) -> str:
        return (self.parameters.get("adapter") or "").lower()

    def url(self) -> URL:
        """Translate config keys into a SQLAlchemy URL."""
        if self.kind != ConnectionKind.DATABASE:
            raise ConfigurationError(f"Connection {self.alias} is not a database ({self.kind.value})")

        driver = DRIVERS.get(self.adapter)
        if not driver:
            raise ConfigurationError(f"Unsupported adapter for {self.alias}: {self.adapter}")

        if driver == "sqlite":
            return URL.create(driver, database=self.parameters.get("name") or None)

        query = {}
        if self.parameters.get("charset"):
            query["charset"] = self.parameters["charset"]

        return URL.create(
            driver,
            username=self.parameters.get("user") or None,
            password=self.parameters.get("password") or None,
            host=self.parameters.get("host") or None,
            port=self.parameters.get("port"),
            database=self.parameters.get("name") or None,
            query=query,
        )


class Connection:
    """
    A live handle on one configured database.

    The engine is created on first use. `reset()` throws away pooled
    driver connections so the next `open()` reconnects; streaming reads leave
    driver state behind that a following bulk write must not inherit.
    """

    def __init__(self, descriptor: ConnectionDescriptor):
        self.descriptor = descriptor
        self._engine: Optional[Engine] = None

    @property
    def alias(self) -> str:
        return self.descriptor.alias

    @property
    def prefix(self) -> str:
        return self.descriptor.prefix

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = build_engine(self.descriptor)
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def open(self) -> SAConnection:
        """Get a database connection."""
        return self.engine.connect()

    def inspector(self) -> Inspector:
        """Get a fresh (uncached) reflection inspector."""
        return inspect(self.engine)

    def reset(self) -> None:
        """Drop pooled driver connections."""
        if self._engine is not None:
            self._engine.dispose()
            logger.debug(f"Reset connection pool for {self.alias}")

    def close(self) -> None:
        self.reset()
        self._engine = None

    def __repr__(self) -> str:
        return f"Connection(alias={self.alias!r}, kind={self.descriptor.kind.value!r})"


def _create_sqlite_engine(url: URL) -> Engine:
    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, poolclass=NullPool)

    @event.listens_for(engine, "connect")
    def _sqlite_pragmas(dbapi_conn, _):
        cur = dbapi_conn.cursor()
        try:
            cur.execute("PRAGMA journal_mode=WAL")
            cur.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        finally:
            cur.close()

    return engine


def build_engine(descriptor: ConnectionDescriptor) -> Engine:
    url = descriptor.url()
    if url.get_backend_name() == "sqlite":
        return _create_sqlite_engine(url)

    options = dict(descriptor.parameters.get("options") or {})
    return create_engine(url, pool_pre_ping=True, pool_recycle=3600, **options)
