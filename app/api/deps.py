# FastAPI dependencies (e.g., get_db_session, get_current_session)
# app/api/deps.py

import logging
from typing import AsyncGenerator, Optional

import redis.asyncio as redis
from fastapi import Depends, Query, status
from fastapi.security import HTTPAuthorizationCredentials
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.errors import InternalServerErrorException, ProblemException
from app.core.security import (
    InvalidTokenException,
    MissingTokenException,
    PasswordHasher,
    SessionTokenError,
    SessionTokenExpiredError,
    TokenExpiredException,
    token_bearer_scheme,
)
from app.data_access.database import create_engine, create_session_factory
from app.data_access.redis_client import CacheError, CacheRepository, TaskQueue
from app.data_access.repositories import CinemaRepository, MovieRepository, UserRepository
from app.data_access.storage_client import ObjectStorageClient
from app.models.auth import Session
from app.models.pagination import PaginationParams
from app.models.task import MovieImageDeleteTask, MovieImageUploadTask
from app.services.cinema_service import CinemaService
from app.services.movie_service import MovieService
from app.services.session_service import SessionService
from app.services.user_service import UserService
from app.workers.image_worker import build_queues, build_storage_client

logger = logging.getLogger(__name__)

# --- Global Clients (Initialized once in the FastAPI lifespan) ---

engine: Optional[AsyncEngine] = None
session_factory: Optional[async_sessionmaker[AsyncSession]] = None
redis_client: Optional[redis.Redis] = None
storage_client: Optional[ObjectStorageClient] = None
password_hasher = PasswordHasher()


class ServiceUnavailableException(ProblemException):
    def __init__(self, details: str):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            title="Service Unavailable",
            details=details,
        )


async def initialize_connections():
    """
    Initializes the database engine, Redis and object storage clients.
    Call this during FastAPI startup using lifespan events.
    """
    global engine, session_factory, redis_client, storage_client
    logger.info("Initializing external connections...")

    # --- Database Initialization ---
    engine = create_engine(settings.DATABASE_URL.get_secret_value(), echo=settings.DATABASE_ECHO)
    session_factory = create_session_factory(engine)
    logger.info("Database engine initialized successfully.")

    # --- Redis Initialization ---
    try:
        # Use decode_responses=True to get strings back from Redis directly
        redis_client = redis.from_url(
            settings.REDIS_URL.get_secret_value(),
            encoding="utf-8",
            decode_responses=True,
        )
        await redis_client.ping()
        logger.info("Redis client initialized successfully.")
    except RedisError as e:
        logger.error(f"Redis connection failed during initialization: {e}", exc_info=True)
        redis_client = None

    # --- Object Storage Initialization ---
    try:
        storage_client = build_storage_client(settings)
    except ValueError as e:
        # The API only enqueues work; uploads happen in the worker
        logger.warning(f"Object storage not configured: {e}")
        storage_client = None


async def close_connections():
    """
    Closes Redis and database connections.
    Call this during FastAPI shutdown using lifespan events.
    """
    global engine, redis_client
    logger.info("Closing external connections...")
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis client closed.")
    if engine:
        await engine.dispose()
        engine = None
        logger.info("Database engine disposed.")


# --- Database Dependency ---

async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields one AsyncSession per request.

    Raises:
        ServiceUnavailableException: If the engine is not initialized.
    """
    if session_factory is None:
        logger.critical("Database session factory is not available. Check initialization.")
        raise ServiceUnavailableException("Database service not available.")
    async with session_factory() as session:
        yield session


# --- Cache Dependency ---

async def get_redis() -> AsyncGenerator[redis.Redis, None]:
    """
    FastAPI dependency that yields an async Redis client instance.

    Raises:
        ServiceUnavailableException: If the Redis client instance is not available.
    """
    if redis_client is None:
        logger.critical("Redis client instance is not available. Check initialization.")
        raise ServiceUnavailableException("Cache service not available.")
    yield redis_client


def get_upload_queue(client: redis.Redis = Depends(get_redis)) -> TaskQueue[MovieImageUploadTask]:
    return build_queues(client, settings)[0]


def get_delete_queue(client: redis.Redis = Depends(get_redis)) -> TaskQueue[MovieImageDeleteTask]:
    return build_queues(client, settings)[1]


# --- Service Dependencies ---

def get_session_service(client: redis.Redis = Depends(get_redis)) -> SessionService:
    return SessionService(
        CacheRepository(client),
        secret_key=settings.SESSION_SECRET_KEY.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
        ttl_seconds=settings.SESSION_TTL_SECONDS,
        key_prefix=settings.SESSION_KEY_PREFIX,
    )


def get_user_service(
    db: AsyncSession = Depends(get_db_session),
    session_service: SessionService = Depends(get_session_service),
) -> UserService:
    return UserService(UserRepository(db), session_service, password_hasher)


def get_cinema_service(db: AsyncSession = Depends(get_db_session)) -> CinemaService:
    return CinemaService(CinemaRepository(db))


def get_movie_service(
    db: AsyncSession = Depends(get_db_session),
    upload_queue: TaskQueue[MovieImageUploadTask] = Depends(get_upload_queue),
    delete_queue: TaskQueue[MovieImageDeleteTask] = Depends(get_delete_queue),
) -> MovieService:
    return MovieService(
        MovieRepository(db),
        storage_client=storage_client,
        upload_queue=upload_queue,
        delete_queue=delete_queue,
        max_images=settings.MAX_IMAGES_PER_MOVIE,
        max_image_size_bytes=settings.MAX_IMAGE_SIZE_BYTES,
        allowed_content_types=settings.ALLOWED_IMAGE_CONTENT_TYPES,
    )


# --- Authentication Dependency ---

async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(token_bearer_scheme),
    session_service: SessionService = Depends(get_session_service),
) -> Session:
    """
    Resolves the bearer token of the request to its server-side session.

    Raises:
        MissingTokenException: If no bearer token was sent.
        TokenExpiredException: If the token has expired.
        InvalidTokenException: If the token is invalid or its session was revoked.
        InternalServerErrorException: If the session store cannot be reached.
    """
    if credentials is None or not credentials.credentials:
        logger.debug("Request without bearer token on protected route")
        raise MissingTokenException()
    try:
        return await session_service.get(credentials.credentials)
    except SessionTokenExpiredError:
        logger.info("Expired session token presented")
        raise TokenExpiredException()
    except SessionTokenError as e:
        logger.warning(f"Session token rejected: {e}")
        raise InvalidTokenException()
    except CacheError as e:
        logger.error(f"Session store unavailable while resolving token: {e}")
        raise InternalServerErrorException()


# --- Pagination Dependency ---

def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number."),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Number of items per page."),
    sort: str = Query("-createdAt", description="Sort field; prefix with '-' for descending order."),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit, sort=sort)
