"""Shared helpers for marketplace service classes."""

import logging

from libs.common.errors import PersistenceFailure
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession


async def commit_or_raise(
    db: AsyncSession,
    logger: logging.Logger,
    failure_message: str,
    **context,
) -> None:
    """Commit the unit of work; roll back and raise PersistenceFailure on error."""
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(failure_message, extra={"extra_fields": context})
        raise PersistenceFailure(failure_message, **context)
