from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from referral_portal.core.config import settings


engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)
SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


async def get_session() -> AsyncSession:
    async with SessionLocal() as session:
        yield session


async def create_all() -> None:
    from referral_portal.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
