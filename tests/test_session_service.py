from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.security import SessionTokenError, SessionTokenExpiredError, create_session_token
from app.data_access.models import User
from app.data_access.redis_client import CacheError
from app.services.session_service import SessionNotFoundError


def make_user():
    return User(
        id=uuid4(),
        first_name="John",
        last_name="Doe",
        email="john@example.com",
        password_hash="hash",
        birth_date=date(1990, 1, 1),
    )


async def test_session_round_trip(session_service, redis_client):
    user = make_user()

    token = await session_service.create(user)
    session = await session_service.get(token)

    assert session.user_id == user.id
    assert session.email == "john@example.com"
    assert session.first_name == "John"
    ttl = await redis_client.ttl(f"session:{session.session_id}")
    assert 0 < ttl <= 86400


async def test_deleted_session_is_rejected(session_service):
    token = await session_service.create(make_user())
    session = await session_service.get(token)

    await session_service.delete(session)

    with pytest.raises(SessionNotFoundError):
        await session_service.get(token)


async def test_expired_token_is_rejected(session_service):
    token = create_session_token(uuid4(), uuid4().hex, "test-session-secret", "HS256", ttl_seconds=-10)

    with pytest.raises(SessionTokenExpiredError):
        await session_service.get(token)


async def test_token_signed_with_other_key_is_rejected(session_service):
    token = create_session_token(uuid4(), uuid4().hex, "another-secret", "HS256", ttl_seconds=60)

    with pytest.raises(SessionTokenError):
        await session_service.get(token)


async def test_token_for_unknown_session_is_rejected(session_service):
    token = create_session_token(uuid4(), uuid4().hex, "test-session-secret", "HS256", ttl_seconds=60)

    with pytest.raises(SessionNotFoundError):
        await session_service.get(token)


async def test_unreachable_store_is_not_a_missing_session(session_service, redis_client, monkeypatch):
    token = await session_service.create(make_user())
    monkeypatch.setattr(redis_client, "get", AsyncMock(side_effect=RedisConnectionError("redis down")))

    with pytest.raises(CacheError):
        await session_service.get(token)


async def test_delete_propagates_store_failure(session_service, redis_client, monkeypatch):
    token = await session_service.create(make_user())
    session = await session_service.get(token)
    monkeypatch.setattr(redis_client, "delete", AsyncMock(side_effect=RedisConnectionError("redis down")))

    with pytest.raises(CacheError):
        await session_service.delete(session)

    monkeypatch.undo()
    assert (await session_service.get(token)).session_id == session.session_id
