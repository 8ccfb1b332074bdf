# Overview: Transaction scope, row locking and retry helpers shared by the services.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError

from ..extensions import db
from ..errors import DuplicateKey


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work():
    """
    Run the enclosed writes as one transaction.

    Commits when the block exits normally; rolls back every write made in
    the block when it raises, then re-raises.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Execute a DB operation with retry on retryable failures.

    Retries on OperationalError (deadlocks, locks) and DuplicateKey
    (generated key collision). func must run its own unit_of_work so that
    each attempt starts from a clean session.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, DuplicateKey):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
