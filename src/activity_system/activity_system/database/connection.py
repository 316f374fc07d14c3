from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

import mysql.connector

from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    charset: str = "utf8mb4"
    connect_timeout: int = 10

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "DBConfig":
        """Build from the ``DB_CONFIG`` dict of a config module."""
        missing = [k for k in ("host", "user", "database") if not settings.get(k)]
        if missing:
            raise ValidationError(f"DB_CONFIG is missing: {', '.join(missing)}")
        return cls(
            host=str(settings["host"]),
            port=int(settings.get("port", 3306)),
            user=str(settings["user"]),
            password=str(settings.get("password") or ""),
            database=str(settings["database"]),
            charset=str(settings.get("charset", "utf8mb4")),
            connect_timeout=int(settings.get("connect_timeout", 10)),
        )


class DatabaseConnection:
    """Connection factory, one per database target.

    Every repository call opens its own connection and runs as one transaction
    (see ``db_cursor``); an activity row and its participants or a ledger and
    its records change together or not at all.
    """

    _instances: Dict[DBConfig, "DatabaseConnection"] = {}

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if config not in cls._instances:
            cls._instances[config] = DatabaseConnection(config)
        return cls._instances[config]

    @property
    def database(self) -> str:
        return self._config.database

    def connect(self):
        c = self._config
        return mysql.connector.connect(
            host=c.host,
            port=c.port,
            user=c.user,
            password=c.password,
            database=c.database,
            charset=c.charset,
            connection_timeout=c.connect_timeout,
            autocommit=False,
        )
