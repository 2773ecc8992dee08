from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mani_shop.core.config import settings

# aiosqlite connections are handed between tasks by the pool
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_async_engine(settings.DATABASE_URL, echo=False, connect_args=connect_args)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Request-scoped session for the shop API; services commit their own work."""
    async with async_session() as session:
        yield session
