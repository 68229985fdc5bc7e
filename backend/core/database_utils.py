# backend/core/database_utils.py

from contextlib import asynccontextmanager, contextmanager
from typing import AsyncGenerator, Callable, Iterator, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import SessionLocal
from .exceptions import StorageError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def get_db_context(
    session_factory: Optional[Callable[[], Session]] = None,
) -> AsyncGenerator[Session, None]:
    """
    Async context manager for database sessions.
    Use this for background tasks and non-request contexts.

    Example:
        async with get_db_context() as db:
            # Use db session
            pass
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, action: str) -> Iterator[Session]:
    """
    Run a block as one transaction: commit on success, roll back on any error.

    API errors raised inside the block propagate unchanged after the rollback;
    SQLAlchemy failures are logged and surfaced as a generic ``StorageError``.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Database error while trying to {action}", exc_info=True)
        raise StorageError(f"Failed to {action}")
    except Exception:
        db.rollback()
        raise
