# app/api/endpoints/movies.py

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Path, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from app.api.deps import get_current_session, get_movie_service, get_pagination_params
from app.core.errors import DomainError, InternalServerErrorException, problem_from_domain_error
from app.models.auth import Session
from app.models.movie import (
    IndicativeRatingResponse,
    MovieCreatedResponse,
    MoviePayload,
    MovieResponse,
    MovieUpdatePayload,
)
from app.models.pagination import Page, PaginationParams
from app.services.movie_service import MovieService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/indicative-rating",
    response_model=List[IndicativeRatingResponse],
    summary="List Indicative Ratings",
    description="Retrieve every age classification a movie can carry.",
    responses={404: {"description": "No indicative ratings registered"}},
)
async def list_indicative_ratings(movie_service: MovieService = Depends(get_movie_service)):
    try:
        return await movie_service.get_all_indicative_ratings()
    except DomainError as e:
        raise problem_from_domain_error(e)
    except Exception as e:
        logger.error(f"Error listing indicative ratings: {e}", exc_info=True)
        raise InternalServerErrorException()


@router.post(
    "",
    response_model=MovieCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Movie",
    description=(
        "Creates a movie from a multipart form. Images are uploaded in the background "
        "and appear on the movie once processed."
    ),
    responses={
        404: {"description": "Indicative rating not found"},
        422: {"description": "Invalid fields or images"},
    }
)
async def create_movie(
    title: Optional[str] = Form(None),
    duration: Optional[str] = Form(None),
    indicative_rating_id: Optional[str] = Form(None, alias="indicativeRatingId"),
    images: Optional[List[UploadFile]] = File(None),
    session: Session = Depends(get_current_session),
    movie_service: MovieService = Depends(get_movie_service),
):
    # Form fields are validated here so multipart and JSON bodies share one error format
    try:
        payload = MoviePayload.model_validate(
            {"title": title, "duration": duration, "indicativeRatingId": indicative_rating_id}
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors())

    try:
        return await movie_service.create(session, payload, images or [])
    except DomainError as e:
        logger.warning(f"Movie creation rejected for user {session.user_id}: {e.message}")
        raise problem_from_domain_error(e)
    except Exception as e:
        logger.error(f"Error creating movie for user {session.user_id}: {e}", exc_info=True)
        raise InternalServerErrorException()


@router.get(
    "",
    response_model=Page[MovieResponse],
    summary="List Movies",
    description="Retrieve a paginated list of the authenticated user's movies.",
)
async def list_movies(
    params: PaginationParams = Depends(get_pagination_params),
    session: Session = Depends(get_current_session),
    movie_service: MovieService = Depends(get_movie_service),
):
    try:
        return await movie_service.get_all_by_user_id(session, params)
    except Exception as e:
        logger.error(f"Error listing movies for user {session.user_id}: {e}", exc_info=True)
        raise InternalServerErrorException()


@router.get(
    "/{movieId}",
    response_model=MovieResponse,
    summary="Get Movie Details",
    responses={
        403: {"description": "Movie belongs to another user"},
        404: {"description": "Movie not found"},
    }
)
async def get_movie(
    movie_id: UUID = Path(..., alias="movieId"),
    session: Session = Depends(get_current_session),
    movie_service: MovieService = Depends(get_movie_service),
):
    try:
        return await movie_service.get_by_id(session, movie_id)
    except DomainError as e:
        raise problem_from_domain_error(e)
    except Exception as e:
        logger.error(f"Error getting movie {movie_id}: {e}", exc_info=True)
        raise InternalServerErrorException()


@router.patch(
    "/{movieId}",
    response_model=MovieResponse,
    summary="Update Movie",
    responses={
        403: {"description": "Movie belongs to another user"},
        404: {"description": "Movie or indicative rating not found"},
    }
)
async def update_movie(
    payload: MovieUpdatePayload,
    movie_id: UUID = Path(..., alias="movieId"),
    session: Session = Depends(get_current_session),
    movie_service: MovieService = Depends(get_movie_service),
):
    try:
        return await movie_service.update(session, movie_id, payload)
    except DomainError as e:
        raise problem_from_domain_error(e)
    except Exception as e:
        logger.error(f"Error updating movie {movie_id}: {e}", exc_info=True)
        raise InternalServerErrorException()


@router.delete(
    "/{movieId}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete Movie",
    responses={
        403: {"description": "Movie belongs to another user"},
        404: {"description": "Movie not found"},
    }
)
async def delete_movie(
    movie_id: UUID = Path(..., alias="movieId"),
    session: Session = Depends(get_current_session),
    movie_service: MovieService = Depends(get_movie_service),
):
    try:
        await movie_service.delete(session, movie_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainError as e:
        raise problem_from_domain_error(e)
    except Exception as e:
        logger.error(f"Error deleting movie {movie_id}: {e}", exc_info=True)
        raise InternalServerErrorException()
