# Overview: Row locking and retry helpers for multi-step reconciliation work.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import InternalError

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id columns on Party and Item still catch lost updates there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_on: tuple = RETRYABLE_ERRORS):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts) by default. Callers that allocate
    document numbers also pass IntegrityError, so a number collision
    re-runs the whole operation with a fresh number.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after %s (attempt %d/%d)", type(exc).__name__, attempt + 1, attempts)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, retry_on: tuple = RETRYABLE_ERRORS):
    """
    Run one unit of work with retries; roll back on any failure.

    func must commit its own work. Store errors that survive the retries
    surface as InternalError; every other error is re-raised unchanged
    after the session is rolled back.
    """
    try:
        return run_with_retry(func, retry_on=retry_on)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database operation failed")
        raise InternalError("Database error") from exc
    except Exception:
        db.session.rollback()
        raise
