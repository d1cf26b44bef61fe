"""Async engine and session factory for the document store."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ocrnotes.utils.config import DatabaseConfig
from ocrnotes.utils.logger import get_logger

from .models import Base

logger = get_logger(__name__)


def build_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create the async engine described by ``config``."""
    logger.info("Connecting document store: %s", config.url.split("@")[-1])
    return create_async_engine(config.url, echo=config.echo, future=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create the ``documents`` table if it does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
