from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from .config import DATABASE_URL

Base = declarative_base()


def make_session_factory(url: str = DATABASE_URL) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Engine plus session factory; the API and each worker process own one pair."""
    engine_ = create_async_engine(url, pool_pre_ping=True)
    return engine_, async_sessionmaker(bind=engine_, expire_on_commit=False)


engine, AsyncSessionLocal = make_session_factory()


async def get_db() -> AsyncSession:
    """Request-scoped session: commit when the handler returns, roll back on any error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
