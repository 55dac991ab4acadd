import logging
from datetime import datetime, timezone
from uuid import uuid4

from pydantic import ValidationError

from app.core.security import SessionTokenError, create_session_token, decode_session_token
from app.data_access.models import User
from app.data_access.redis_client import CacheRepository
from app.models.auth import Session

logger = logging.getLogger(__name__)


class SessionCreationError(Exception):
    """The session record could not be written to the cache."""
    pass


class SessionNotFoundError(SessionTokenError):
    """The token is valid but its session was revoked or has expired from the cache."""
    pass


class SessionService:
    def __init__(
        self,
        cache: CacheRepository,
        secret_key: str,
        algorithm: str = "HS256",
        ttl_seconds: int = 86400,
        key_prefix: str = "session:",
    ):
        self.cache = cache
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    async def create(self, user: User) -> str:
        """
        Stores a session record for the user and returns the token that identifies it.

        Raises:
            SessionCreationError: If the cache write fails.
        """
        session = Session(
            session_id=uuid4().hex,
            user_id=user.id,
            email=user.email,
            first_name=user.first_name,
            created_at=datetime.now(timezone.utc),
        )
        stored = await self.cache.set(
            self._key(session.session_id),
            session.model_dump(mode="json", by_alias=True),
            ttl_seconds=self.ttl_seconds,
        )
        if not stored:
            raise SessionCreationError(f"Could not store session for user {user.id}")

        logger.info(f"Session created for user {user.id}")
        return create_session_token(user.id, session.session_id, self.secret_key, self.algorithm, self.ttl_seconds)

    async def get(self, token: str) -> Session:
        """
        Resolves a token to its session.

        Raises:
            SessionTokenExpiredError: If the token has expired.
            SessionNotFoundError: If the session was revoked or is gone from the cache.
            SessionTokenError: If the token is invalid.
            CacheError: If the session store cannot be reached.
        """
        claims = decode_session_token(token, self.secret_key, self.algorithm)
        record = await self.cache.get(self._key(claims["jti"]), strict=True)
        if not isinstance(record, dict):
            logger.warning(f"No active session for token of user {claims['sub']}")
            raise SessionNotFoundError("Session not found")
        try:
            session = Session.model_validate(record)
        except ValidationError as e:
            logger.error(f"Corrupt session record for user {claims['sub']}: {e}")
            raise SessionNotFoundError("Session record is invalid") from e
        if str(session.user_id) != claims["sub"]:
            logger.warning(f"Session {session.session_id} does not belong to token subject {claims['sub']}")
            raise SessionTokenError("Token subject does not match session")
        return session

    async def delete(self, session: Session) -> None:
        """
        Revokes a session.

        Raises:
            CacheError: If the session store cannot be reached; the session stays valid.
        """
        await self.cache.delete(self._key(session.session_id), strict=True)
        logger.info(f"Session revoked for user {session.user_id}")

