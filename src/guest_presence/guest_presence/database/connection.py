from __future__ import annotations

import logging
from dataclasses import dataclass

import mysql.connector

from ..core.exceptions import StorageError

log = logging.getLogger(__name__)


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "guest_presence")),
        )


class DatabaseConnection:
    """Process-wide DB connection factory.

    Built once by the container and handed to every repository. Connections
    are short-lived (one per operation) and pinned to UTC. ``close()`` marks
    the handle as shut down; later ``connect()`` calls fail.
    """

    def __init__(self, config: DBConfig):
        self._config = config
        self._closed = False

    def connect(self):
        if self._closed:
            raise StorageError("Database handle has been closed")
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
            time_zone="+00:00",
        )

    def close(self) -> None:
        if not self._closed:
            log.info("Closing database handle for %s@%s", self._config.database, self._config.host)
        self._closed = True
