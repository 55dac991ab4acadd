from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.errors import EmailAlreadyRegisteredError, InvalidPasswordError, UserNotFoundError
from app.core.security import PasswordHasher
from app.data_access.models import User
from app.models.user import SignInPayload, UserPayload
from app.services.user_service import UserService


@pytest.fixture
def user_repository():
    repository = MagicMock()
    repository.get_by_email = AsyncMock(return_value=None)
    repository.create = AsyncMock(side_effect=lambda user: user)
    return repository


@pytest.fixture
def fake_session_service():
    service = MagicMock()
    service.create = AsyncMock(return_value="session-token")
    return service


@pytest.fixture
def user_service(user_repository, fake_session_service):
    return UserService(user_repository, fake_session_service, PasswordHasher())


def user_payload():
    return UserPayload(
        first_name="John",
        last_name="Doe",
        email="John@Example.com",
        confirm_email="john@example.com",
        password="Str0ngP@ssw0rd!",
        confirm_password="Str0ngP@ssw0rd!",
        birth_date=date(1990, 1, 1),
    )


async def test_create_hashes_password(user_service, user_repository):
    user = await user_service.create(user_payload())

    user_repository.create.assert_awaited_once()
    assert user.email == "john@example.com"
    assert user.password_hash != "Str0ngP@ssw0rd!"
    assert PasswordHasher().verify(user.password_hash, "Str0ngP@ssw0rd!")


async def test_create_existing_email_writes_nothing(user_service, user_repository):
    user_repository.get_by_email.return_value = User(email="john@example.com")

    with pytest.raises(EmailAlreadyRegisteredError):
        await user_service.create(user_payload())

    user_repository.create.assert_not_awaited()


async def test_create_concurrent_registration(user_service, user_repository):
    user_repository.create.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(EmailAlreadyRegisteredError):
        await user_service.create(user_payload())


async def test_sign_in_unknown_email(user_service):
    with pytest.raises(UserNotFoundError):
        await user_service.sign_in(SignInPayload(email="nobody@example.com", password="x"))


async def test_sign_in_wrong_password(user_service, user_repository, fake_session_service):
    user_repository.get_by_email.return_value = User(
        email="john@example.com", password_hash=PasswordHasher().hash("Str0ngP@ssw0rd!")
    )

    with pytest.raises(InvalidPasswordError):
        await user_service.sign_in(SignInPayload(email="john@example.com", password="WrongP@ssw0rd"))

    fake_session_service.create.assert_not_awaited()


async def test_sign_in_returns_token(user_service, user_repository):
    user_repository.get_by_email.return_value = User(
        email="john@example.com", password_hash=PasswordHasher().hash("Str0ngP@ssw0rd!")
    )

    response = await user_service.sign_in(SignInPayload(email="john@example.com", password="Str0ngP@ssw0rd!"))

    assert response.token == "session-token"
