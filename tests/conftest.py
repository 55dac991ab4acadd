import os

# Settings are read at import time; they must exist before the app is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("SESSION_SECRET_KEY", "test-session-secret")
os.environ.setdefault("STORAGE_BUCKET_NAME", "moviepass-test")
os.environ.setdefault("STORAGE_PUBLIC_BASE_URL", "https://cdn.moviepass.test")

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import fakeredis
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db_session, get_redis
from app.core.config import settings
from app.data_access.database import create_session_factory, init_models
from app.data_access.models import IndicativeRating
from app.data_access.redis_client import CacheRepository
from app.data_access.storage_client import ObjectStorageClient, StoredObject
from app.server import app
from app.services.session_service import SessionService

USER_PAYLOAD = {
    "firstName": "John",
    "lastName": "Doe",
    "email": "test@example.com",
    "confirmEmail": "test@example.com",
    "password": "Str0ngP@ssw0rd!",
    "confirmPassword": "Str0ngP@ssw0rd!",
    "birthDate": "1990-01-01T00:00:00Z",
}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def redis_client():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def session_service(redis_client):
    return SessionService(
        CacheRepository(redis_client),
        secret_key=settings.SESSION_SECRET_KEY.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
        ttl_seconds=settings.SESSION_TTL_SECONDS,
    )


@pytest.fixture
def storage_client():
    """Object store double: every upload succeeds with a predictable URL and id."""
    storage = MagicMock(spec=ObjectStorageClient)

    async def upload_image(data, filename, content_type="image/jpeg"):
        key = f"movies/{uuid4().hex}/{filename}"
        return StoredObject(url=f"https://cdn.moviepass.test/{key}", id=key)

    storage.upload_image = AsyncMock(side_effect=upload_image)
    storage.delete_image = AsyncMock(return_value=None)
    return storage


@pytest.fixture
async def client(session_factory, redis_client):
    async def override_get_db_session():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        yield redis_client

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_redis] = override_get_redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def sign_up_and_sign_in(client: AsyncClient, email: str = "test@example.com") -> dict:
    payload = {**USER_PAYLOAD, "email": email, "confirmEmail": email}
    res = await client.post("/v1/users", json=payload)
    assert res.status_code == 201
    res = await client.post("/v1/users/sign-in", json={"email": email, "password": USER_PAYLOAD["password"]})
    assert res.status_code == 200
    return {"Authorization": f"Bearer {res.json()['token']}"}


@pytest.fixture
async def auth_headers(client):
    return await sign_up_and_sign_in(client)


@pytest.fixture
async def other_auth_headers(client):
    return await sign_up_and_sign_in(client, "other@example.com")


@pytest.fixture
async def rating_id(session_factory):
    async with session_factory() as session:
        return await session.scalar(select(IndicativeRating.id).where(IndicativeRating.description == "14"))


@pytest.fixture
def sign_in_as(client):
    async def _sign_in_as(email: str) -> dict:
        return await sign_up_and_sign_in(client, email)
    return _sign_in_as
