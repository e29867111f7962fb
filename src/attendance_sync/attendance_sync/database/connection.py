from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class DBConfig:
    path: str = ":memory:"


class DatabaseConnection:
    """Process-wide handle to the on-device SQLite store.

    The sqlite3 connection is opened lazily on first use and shared by every
    repository. Access is serialized through ``lock`` so one transaction runs
    at a time, whichever worker thread picks it up.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self._config = config
        self._conn: Optional[sqlite3.Connection] = None
        self.lock = threading.RLock()

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None

    @property
    def path(self) -> str:
        return self._config.path

    def connect(self) -> sqlite3.Connection:
        with self.lock:
            if self._conn is None:
                logger.debug("Opening SQLite store at %s", self._config.path)
                conn = sqlite3.connect(self._config.path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._conn = conn
            return self._conn

    def close(self) -> None:
        with self.lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
