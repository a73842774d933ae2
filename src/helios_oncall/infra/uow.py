"""
Unit of Work boundary for helios-oncall. All transactional changes go through this.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator

from sqlalchemy.orm import Session, sessionmaker

from . import db as _db


@contextlib.contextmanager
def session(factory: sessionmaker | None = None) -> Generator[Session, None, None]:
    """
    Database session context manager for CLI operations and batch jobs.

    - Opens a DB session (from ``factory`` when given)
    - Yields it for use
    - On success: commits the transaction
    - On exception: rolls back and re-raises the exception
    - Always closes the session

    Usage:
        with session() as db:
            SqlSliceRepository(db).upsert_slices(slices)
    """
    db = (factory or _db.SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
