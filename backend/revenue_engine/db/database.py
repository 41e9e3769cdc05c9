"""
Database Configuration and Session Management

SQLite (default) or PostgreSQL, selected by DATABASE_URL.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from revenue_engine.core.settings import Settings, get_settings
from revenue_engine.db.models import Base


def build_async_engine(settings: Settings) -> AsyncEngine:
    engine_kwargs: dict = {"echo": settings.debug}
    if not settings.database_url.startswith("sqlite"):
        # PostgreSQL connection pool settings
        engine_kwargs.update({
            "pool_size": 5,
            "max_overflow": 10,
            "pool_pre_ping": True,
        })
    return create_async_engine(settings.database_url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Create async engine
engine = build_async_engine(get_settings())

# Create async session factory
AsyncSessionLocal = build_session_factory(engine)


async def create_tables(target: AsyncEngine = None):
    """Create all database tables"""
    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

