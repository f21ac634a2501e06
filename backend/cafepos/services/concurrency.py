# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def begin_write():
    """
    Take the database write lock at transaction start.

    SQLite has no row locks; BEGIN IMMEDIATE serializes writers so two
    orders can never read the same stock snapshot. Other backends rely on
    lock_for_update() row locks instead.
    """
    conn = db.session.connection()
    if conn.dialect.name != "sqlite":
        return
    # pysqlite may already hold an implicit transaction after earlier DML
    if not conn.connection.dbapi_connection.in_transaction:
        conn.execute(text("BEGIN IMMEDIATE"))


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Domain errors propagate immediately,
    after the session is rolled back.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning("retrying after concurrency conflict attempt=%s error=%s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
