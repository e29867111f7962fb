from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

from ..core.exceptions import StoreError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection) -> Iterator[Tuple[sqlite3.Connection, sqlite3.Cursor]]:
    with conn_factory.lock:
        conn = conn_factory.connect()
        cur = conn.cursor()
        try:
            yield conn, cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()


def _run_sync(conn_factory: DatabaseConnection, work: Callable[[sqlite3.Cursor], T]) -> T:
    try:
        with db_cursor(conn_factory) as (_, cur):
            return work(cur)
    except sqlite3.IntegrityError:
        raise
    except sqlite3.Error as exc:
        logger.error("Store transaction failed: %s", exc)
        raise StoreError(str(exc)) from exc


async def run_in_transaction(conn_factory: DatabaseConnection, work: Callable[[sqlite3.Cursor], T]) -> T:
    """Run ``work(cur)`` in one transaction on a worker thread.

    Commits when ``work`` returns, rolls back and re-raises otherwise.
    Cancelling the awaiting task does not interrupt a started transaction.
    """
    return await asyncio.to_thread(_run_sync, conn_factory, work)


def fetchone(cur: sqlite3.Cursor) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return dict(row) if row else None


def fetchall(cur: sqlite3.Cursor) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return [dict(r) for r in rows or []]


def safe_parse_json(value: Any, default: Any = None) -> Any:
    """Decode JSON text from the store; corrupt values degrade to ``default``."""
    if value is None:
        return default
    if not isinstance(value, (str, bytes)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring unparseable stored JSON: %.60r", value)
        return default


def to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def safe_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return None


def safe_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def safe_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)
