# Relational database engine, sessions and schema bootstrap
# app/data_access/database.py

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.data_access.models import Base, IndicativeRating

logger = logging.getLogger(__name__)

# Brazilian age classification (ClassInd); the application never writes this table
DEFAULT_INDICATIVE_RATINGS = {
    "L": "https://static.moviepass.app/ratings/L.png",
    "10": "https://static.moviepass.app/ratings/10.png",
    "12": "https://static.moviepass.app/ratings/12.png",
    "14": "https://static.moviepass.app/ratings/14.png",
    "16": "https://static.moviepass.app/ratings/16.png",
    "18": "https://static.moviepass.app/ratings/18.png",
}


def create_engine(database_url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """
    Creates the async SQLAlchemy engine. The engine owns the connection pool
    and is shared by every request and by the queue worker.
    """
    logger.info(f"Creating database engine for {database_url.split('://', 1)[0]}://...") # Never log credentials
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_models(engine: AsyncEngine, seed_ratings: Optional[dict] = None) -> None:
    """
    Creates missing tables and seeds the indicative rating lookup table.

    Args:
        engine: The async engine to bootstrap.
        seed_ratings: Mapping of description -> image URL. Defaults to DEFAULT_INDICATIVE_RATINGS.

    Raises:
        SQLAlchemyError: If the schema cannot be created.
    """
    ratings = DEFAULT_INDICATIVE_RATINGS if seed_ratings is None else seed_ratings
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables verified.")

        async with create_session_factory(engine)() as session:
            existing = set((await session.scalars(select(IndicativeRating.description))).all())
            missing = [desc for desc in ratings if desc not in existing]
            for description in missing:
                session.add(IndicativeRating(description=description, image_url=ratings[description]))
            if missing:
                await session.commit()
                logger.info(f"Seeded {len(missing)} indicative ratings: {missing}")
    except SQLAlchemyError as e:
        logger.error(f"Failed to initialize database schema: {e}", exc_info=True)
        raise
