import logging

from sqlalchemy.exc import IntegrityError

from app.core.errors import EmailAlreadyRegisteredError, InvalidPasswordError, UserNotFoundError
from app.core.security import PasswordHasher
from app.data_access.models import User
from app.data_access.repositories import UserRepository
from app.models.user import SignInPayload, SignInResponse, UserPayload
from app.services.session_service import SessionService

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, user_repository: UserRepository, session_service: SessionService, password_hasher: PasswordHasher):
        self.user_repository = user_repository
        self.session_service = session_service
        self.password_hasher = password_hasher

    async def create(self, payload: UserPayload) -> User:
        """
        Registers a new user.

        Raises:
            EmailAlreadyRegisteredError: If the email is taken; nothing is written.
            SQLAlchemyError: If the database fails.
        """
        logger.info("Initializing user creation process")

        existing = await self.user_repository.get_by_email(payload.email)
        if existing is not None:
            logger.warning(f"There is already a user with this email: {payload.email}")
            raise EmailAlreadyRegisteredError()

        user = User(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            password_hash=self.password_hasher.hash(payload.password),
            birth_date=payload.birth_date,
        )
        try:
            user = await self.user_repository.create(user)
        except IntegrityError as e:
            # Unique email index caught a concurrent registration
            logger.warning(f"Concurrent registration for email {payload.email}: {e}")
            raise EmailAlreadyRegisteredError() from e

        logger.info(f"User creation process executed successfully: {user.id}")
        return user

    async def sign_in(self, payload: SignInPayload) -> SignInResponse:
        """
        Authenticates a user and opens a session.

        Raises:
            UserNotFoundError: If no user has this email.
            InvalidPasswordError: If the password does not match.
            SessionCreationError: If the session cannot be stored.
        """
        logger.info(f"Attempting sign in for: {payload.email}")

        user = await self.user_repository.get_by_email(payload.email)
        if user is None:
            logger.warning(f"User not found with this email: {payload.email}")
            raise UserNotFoundError()

        if not self.password_hasher.verify(user.password_hash, payload.password):
            logger.warning(f"The password entered is invalid for: {payload.email}")
            raise InvalidPasswordError()

        token = await self.session_service.create(user)

        logger.info(f"User sign in process executed successfully: {user.id}")
        return SignInResponse(token=token)
