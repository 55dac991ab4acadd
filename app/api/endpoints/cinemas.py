import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Response, status

from app.api.deps import get_cinema_service, get_current_session, get_pagination_params
from app.core.errors import DomainError, InternalServerErrorException, problem_from_domain_error
from app.models.auth import Session
from app.models.cinema import CinemaPayload, CinemaResponse
from app.models.pagination import Page, PaginationParams
from app.services.cinema_service import CinemaService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "",
    response_model=CinemaResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Cinema",
)
async def create_cinema(
    payload: CinemaPayload,
    session: Session = Depends(get_current_session),
    cinema_service: CinemaService = Depends(get_cinema_service),
):
    try:
        return await cinema_service.create(session, payload)
    except Exception as e:
        logger.error(f"Error creating cinema for user {session.user_id}: {e}", exc_info=True)
        raise InternalServerErrorException()


@router.get(
    "",
    response_model=Page[CinemaResponse],
    summary="List Cinemas",
    description="Retrieve a paginated list of the cinemas owned by the authenticated user.",
)
async def list_cinemas(
    params: PaginationParams = Depends(get_pagination_params),
    session: Session = Depends(get_current_session),
    cinema_service: CinemaService = Depends(get_cinema_service),
):
    try:
        return await cinema_service.get_all(session, params)
    except Exception as e:
        logger.error(f"Error listing cinemas for user {session.user_id}: {e}", exc_info=True)
        raise InternalServerErrorException()


@router.get(
    "/{cinemaId}",
    response_model=CinemaResponse,
    summary="Get Cinema",
    responses={
        403: {"description": "Cinema belongs to another user"},
        404: {"description": "Cinema not found"},
    }
)
async def get_cinema(
    cinema_id: UUID = Path(..., alias="cinemaId"),
    session: Session = Depends(get_current_session),
    cinema_service: CinemaService = Depends(get_cinema_service),
):
    try:
        return await cinema_service.get_by_id(session, cinema_id)
    except DomainError as e:
        raise problem_from_domain_error(e)
    except Exception as e:
        logger.error(f"Error getting cinema {cinema_id}: {e}", exc_info=True)
        raise InternalServerErrorException()


@router.delete(
    "/{cinemaId}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete Cinema",
    responses={
        403: {"description": "Cinema belongs to another user"},
        404: {"description": "Cinema not found"},
    }
)
async def delete_cinema(
    cinema_id: UUID = Path(..., alias="cinemaId"),
    session: Session = Depends(get_current_session),
    cinema_service: CinemaService = Depends(get_cinema_service),
):
    try:
        await cinema_service.delete(session, cinema_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainError as e:
        raise problem_from_domain_error(e)
    except Exception as e:
        logger.error(f"Error deleting cinema {cinema_id}: {e}", exc_info=True)
        raise InternalServerErrorException()
