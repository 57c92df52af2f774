"""Database configuration and setup."""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


async def init_db(engine) -> None:
    """Create tables on an existing engine."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def get_engine(database_url: str):
    """Create async engine."""
    return create_async_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
    )


def get_session_factory(engine):
    """Create async session factory."""
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        future=True,
    )
