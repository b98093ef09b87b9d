"""Connection configuration loading."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PORTER_CONFIG"
DEFAULT_CONFIG_PATH = "config.json"


class ConnectionConfig(BaseModel):
    """One named connection entry from the config file."""

    model_config = ConfigDict(populate_by_name=True)

    alias: str
    type: str = "database"
    adapter: str = "mysql"
    host: str = "localhost"
    port: Optional[int] = None
    name: str = ""
    user: str = ""
    password: str = Field("", alias="pass")
    prefix: str = ""
    charset: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)


class Config:
    """
    Named connection aliases for source and target databases.

    Config file format:
        {
            "default_alias": "local",
            "connections": [
                {"alias": "local", "adapter": "mysql", "host": "localhost",
                 "name": "vanilla", "user": "root", "pass": "", "prefix": "GDN_"}
            ]
        }
    """

    def __init__(
        self,
        connections: Optional[List[ConnectionConfig]] = None,
        default_alias: Optional[str] = None
    ):
        self.connections: Dict[str, ConnectionConfig] = {
            c.alias: c for c in (connections or [])
        }
        self.default_alias = default_alias

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create from dictionary representation."""
        try:
            connections = [
                ConnectionConfig.model_validate(entry)
                for entry in data.get("connections", [])
            ]
        except ValidationError as e:
            raise ConfigurationError(f"Invalid connection entry: {e}") from e

        return cls(connections=connections, default_alias=data.get("default_alias"))

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """
        Load the config file.

        Args:
            path: Explicit path; falls back to $PORTER_CONFIG, then ./config.json

        Returns:
            Loaded Config
        """
        path = path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
        file_path = Path(path)

        if not file_path.exists():
            raise ConfigurationError(f"Config file not found: {file_path}")

        try:
            with open(file_path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {file_path} is not valid JSON: {e}") from e

        config = cls.from_dict(data)
        logger.debug(f"Loaded {len(config.connections)} connection(s) from {file_path}")
        return config

    def get_connection_alias(self, alias: str) -> ConnectionConfig:
        """Get a connection entry by alias."""
        if alias not in self.connections:
            raise ConfigurationError(f"No connection configured with alias: {alias}")
        return self.connections[alias]

    def get_default_connection(self) -> ConnectionConfig:
        """Get the connection used when a request names no alias."""
        if self.default_alias:
            return self.get_connection_alias(self.default_alias)
        if len(self.connections) == 1:
            return next(iter(self.connections.values()))
        raise ConfigurationError("No default_alias configured and no alias given")

    def list_aliases(self) -> List[str]:
        """List all configured aliases."""
        return list(self.connections.keys())
