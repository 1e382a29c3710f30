from __future__ import annotations

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from librarium.errors import Conflict
from librarium.extensions import db

logger = logging.getLogger(__name__)


@contextmanager
def atomic(operation: str):
    """
    Commit everything added to the session inside the block, or nothing.

    Version mismatches and uniqueness violations at flush time mean another
    writer got there first; they surface as a retryable Conflict.
    """
    try:
        yield
        db.session.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.session.rollback()
        logger.warning("conflict during %s: %s", operation, exc)
        raise Conflict(f"{operation} conflicted with a concurrent update, retry") from exc
    except Exception:
        db.session.rollback()
        raise
