import logging

from fastapi import APIRouter, Depends, Response, status

from app.api.deps import get_current_session, get_session_service, get_user_service
from app.core.errors import (
    DomainError,
    InternalServerErrorException,
    InvalidPasswordError,
    UserNotFoundError,
    problem_from_domain_error,
)
from app.models.auth import Session
from app.models.user import SignInPayload, SignInResponse, UserPayload
from app.services.session_service import SessionService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_class=Response,
    summary="Register New User",
    responses={
        409: {"description": "User with this email already exists"},
        422: {"description": "Invalid input data"},
        500: {"description": "Internal server error during registration"},
    }
)
async def create_user(
    payload: UserPayload,
    user_service: UserService = Depends(get_user_service),
):
    """Registers a new user account. Answers 201 with an empty body."""
    try:
        await user_service.create(payload)
        return Response(status_code=status.HTTP_201_CREATED)
    except DomainError as e:
        logger.warning(f"Registration failed: {e.message} (Status Code: {e.status_code})")
        raise problem_from_domain_error(e)
    except Exception as e:
        logger.error(f"Unexpected error during user registration: {e}", exc_info=True)
        raise InternalServerErrorException()


@router.post(
    "/sign-in",
    response_model=SignInResponse,
    summary="User Sign In",
    description="Authenticates a user with email and password, returning a session token.",
    responses={
        401: {"description": "Invalid email or password"},
        422: {"description": "Invalid input data"},
        500: {"description": "Internal server error during sign in"},
    }
)
async def sign_in(
    payload: SignInPayload,
    user_service: UserService = Depends(get_user_service),
):
    try:
        return await user_service.sign_in(payload)
    except (UserNotFoundError, InvalidPasswordError) as e:
        # Unknown email and wrong password look the same to the caller
        logger.warning(f"Sign in failed: {e.message}")
        raise problem_from_domain_error(InvalidPasswordError())
    except DomainError as e:
        raise problem_from_domain_error(e)
    except Exception as e:
        logger.error(f"Unexpected error during sign in: {e}", exc_info=True)
        raise InternalServerErrorException()


@router.post(
    "/sign-out",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="User Sign Out",
    description="Revokes the session of the presented token.",
)
async def sign_out(
    session: Session = Depends(get_current_session),
    session_service: SessionService = Depends(get_session_service),
):
    try:
        await session_service.delete(session)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        logger.error(f"Unexpected error during sign out: {e}", exc_info=True)
        raise InternalServerErrorException()
