from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from referral_portal.core.auth import get_current_user
from referral_portal.db.session import get_session
from referral_portal.schemas.user import ActorContext


async def get_db_session() -> AsyncSession:
    async for session in get_session():
        yield session


async def get_user(user: ActorContext = Depends(get_current_user)) -> ActorContext:
    return user
