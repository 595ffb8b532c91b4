from sqlalchemy.ext.asyncio import AsyncAttrs, AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from loguru import logger


class Base(AsyncAttrs, DeclarativeBase):
    pass


def is_memory_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite") and (
        ":memory:" in database_url or database_url.rstrip("/").endswith(":")
    )


def create_engine(database_url: str) -> AsyncEngine:
    logger.info(f"Creating database engine for {database_url.split('@')[-1]}")
    if is_memory_sqlite(database_url):
        # One shared connection, otherwise every session gets its own empty database
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(database_url, pool_pre_ping=True)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_models(engine: AsyncEngine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created.")
