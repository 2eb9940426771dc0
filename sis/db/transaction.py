"""Unit-of-work helper shared by every multi-row service operation."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sis.core.exceptions import ServiceError
from sis.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str, on_conflict: ServiceError) -> AsyncIterator[AsyncSession]:
    """Commit everything written inside the block, or nothing.

    A storage unique-constraint violation raised while flushing or committing is
    re-raised as ``on_conflict``. Any other exception rolls back and propagates
    unchanged.
    """
    try:
        yield db
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("transaction_conflict", operation=operation, error=str(exc.orig))
        raise on_conflict from exc
    except ServiceError as exc:
        await db.rollback()
        logger.info("transaction_rejected", operation=operation, reason=exc.message)
        raise
    except Exception:
        await db.rollback()
        logger.error("transaction_rolled_back", operation=operation, exc_info=True)
        raise
