from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.core.errors import PersistenceFailure

logger = logging.getLogger("referrals.db")


async def commit_or_raise(session: AsyncSession, *, operation: str) -> None:
    """Commit the unit of work; on failure roll everything back and raise PersistenceFailure."""
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("commit_failed", extra={"operation": operation})
        raise PersistenceFailure() from exc
