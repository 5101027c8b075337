# Overview: Write-safety helpers shared by every service that mutates the inventory or ledger.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id columns
    on InventoryItem and Transaction detect conflicting writers instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run one read-modify-write unit of work, retrying on write conflicts.

    `func` must do all of its reads and writes and commit. On
    OperationalError (database locked) or StaleDataError (a row's version_id
    moved underneath us) the session is rolled back and `func` runs again
    from a fresh read. Any other exception rolls back and propagates, so a
    failed unit of work never leaves partial state behind.
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
            logger.warning("Write conflict (%s), retrying attempt %d", type(exc).__name__, attempt + 2)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
