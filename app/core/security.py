# Session token signing/verification and password hashing
# app/core/security.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from fastapi import status
from fastapi.security import HTTPBearer
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

from app.core.errors import ProblemException

logger = logging.getLogger(__name__)

# Scheme for extracting "Bearer <token>" from Authorization header
# auto_error=False means we handle the error manually if token is missing/malformed
token_bearer_scheme = HTTPBearer(auto_error=False)

UNAUTHORIZED_TITLE = "Unauthorized"


# --- HTTP exceptions for protected routes ---
class CredentialsException(ProblemException):
    def __init__(self, detail: str = "Could not validate credentials", status_code: int = status.HTTP_401_UNAUTHORIZED):
        super().__init__(
            status_code=status_code,
            title=UNAUTHORIZED_TITLE,
            details=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class TokenExpiredException(CredentialsException):
    def __init__(self, detail: str = "Session has expired"):
        super().__init__(detail=detail)

class InvalidTokenException(CredentialsException):
    def __init__(self, detail: str = "Invalid session token"):
        super().__init__(detail=detail)

class MissingTokenException(CredentialsException):
    def __init__(self, detail: str = "Authentication token missing"):
        super().__init__(detail=detail)


# --- Token errors raised by the verification helpers ---
class SessionTokenError(Exception):
    """Token could not be verified."""
    pass

class SessionTokenExpiredError(SessionTokenError):
    pass


def create_session_token(user_id: UUID, session_id: str, secret_key: str, algorithm: str, ttl_seconds: int) -> str:
    """Signs a token whose `jti` claim names the session record in the cache."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "jti": session_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
    }
    return jwt.encode(claims, secret_key, algorithm=algorithm)


def decode_session_token(token: str, secret_key: str, algorithm: str) -> Dict[str, Any]:
    """
    Verifies signature and expiry of a session token.

    Returns:
        The decoded claims; `sub` and `jti` are guaranteed to be present.

    Raises:
        SessionTokenExpiredError: If the token has expired.
        SessionTokenError: For any other verification failure.
    """
    try:
        payload = jwt.decode(
            token,
            secret_key,
            algorithms=[algorithm],
            options={"verify_signature": True, "verify_exp": True, "verify_aud": False},
        )
    except ExpiredSignatureError as e:
        raise SessionTokenExpiredError("Token expired") from e
    except JWTClaimsError as e:
        raise SessionTokenError(f"Invalid token claims: {e}") from e
    except JWTError as e:
        raise SessionTokenError(f"Invalid token: {e}") from e

    if not isinstance(payload.get("sub"), str) or not isinstance(payload.get("jti"), str):
        logger.error("Session token is missing the 'sub' or 'jti' claim.")
        raise SessionTokenError("Token is missing required claims")
    return payload


class PasswordHasher:
    """Argon2id password hasher with library defaults."""

    def __init__(self) -> None:
        self._hasher = Argon2Hasher()

    def hash(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        try:
            return self._hasher.verify(password_hash, password)
        except (VerifyMismatchError, InvalidHashError, VerificationError):
            return False
