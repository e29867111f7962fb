from __future__ import annotations

import logging
from typing import Dict, List

from .connection import DatabaseConnection
from .schema import TABLES
from .sqlite_base import db_cursor, fetchall

logger = logging.getLogger(__name__)


def _column_def(name: str, sql_type: str) -> str:
    return f"{name} {sql_type}"


def _existing_columns(cur, table: str) -> List[str]:
    cur.execute(f"PRAGMA table_info({table})")
    return [row["name"] for row in fetchall(cur)]


def _add_missing_columns(cur, table: str, columns: Dict[str, str]) -> List[str]:
    # ALTER TABLE cannot add PRIMARY KEY columns; those exist from CREATE TABLE.
    existing = set(_existing_columns(cur, table))
    added: List[str] = []
    for name, sql_type in columns.items():
        if name in existing or "PRIMARY KEY" in sql_type:
            continue
        cur.execute(f"ALTER TABLE {table} ADD COLUMN {_column_def(name, sql_type)}")
        added.append(name)
    return added


def create_schema(conn_factory: DatabaseConnection) -> None:
    """Create every table and index if missing and add columns new installs have.

    Safe to call on every startup. Never drops or rewrites existing data.
    """
    with db_cursor(conn_factory) as (_, cur):
        for table, (columns, indexes) in TABLES.items():
            column_sql = ", ".join(_column_def(n, t) for n, t in columns.items())
            cur.execute(f"CREATE TABLE IF NOT EXISTS {table} ({column_sql})")
            added = _add_missing_columns(cur, table, columns)
            if added:
                logger.info("Migrated table %s: added columns %s", table, ", ".join(added))
            for index_name, target in indexes.items():
                cur.execute(f"CREATE INDEX IF NOT EXISTS {index_name} ON {target}")
    logger.debug("Schema ready at %s", conn_factory.path)


def list_tables(conn_factory: DatabaseConnection) -> list[str]:
    with db_cursor(conn_factory) as (_, cur):
        cur.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
        return [row["name"] for row in fetchall(cur)]


def list_columns(conn_factory: DatabaseConnection, table: str) -> list[str]:
    with db_cursor(conn_factory) as (_, cur):
        return _existing_columns(cur, table)
