from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from harmony.config import settings
from harmony.database.models import Base


DATABASE_URL = settings.database_url


def create_engine_for(url: str) -> AsyncEngine:
    """Build an async engine; SQLite files get a longer lock timeout."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["timeout"] = 30
    return create_async_engine(url, pool_pre_ping=True, connect_args=connect_args)


def create_session_factory(
    bind: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        expire_on_commit=False,
        class_=AsyncSession,
    )


engine: AsyncEngine = create_engine_for(DATABASE_URL)

SessionLocal = create_session_factory(engine)


async def init_models(bind: Optional[AsyncEngine] = None) -> None:
    """Create missing tables. Safe to call on every startup."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session
