# Overview: Row locking and retry helpers for order state changes.

from __future__ import annotations

import time
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


T = TypeVar("T")

# Lock timeouts, deadlocks and version_id_col conflicts on orders
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """SELECT ... FOR UPDATE on the order row. SQLite ignores the clause."""
    return query.with_for_update()


def run_with_retry(op: Callable[[], T], *, attempts: int = 3, backoff_base: float = 0.1) -> T:
    """
    Run op(), rolling back and retrying when a concurrent writer got there
    first. Waits backoff_base * 2**n between tries; the last failure is
    re-raised. Domain errors raised by op propagate immediately.
    """
    for attempt in range(1, attempts + 1):
        try:
            return op()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning("Retrying after %s (attempt %s/%s)", type(exc).__name__, attempt, attempts)
            time.sleep(backoff_base * (2 ** (attempt - 1)))
    raise RuntimeError("run_with_retry needs at least one attempt")
