# Relational repositories (SQLAlchemy async sessions)
# app/data_access/repositories.py

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.data_access.models import Cinema, IndicativeRating, Movie, MovieImage, User
from app.models.pagination import PaginationParams

logger = logging.getLogger(__name__)


class BaseRepository:
    """Common session handling for repositories."""
    def __init__(self, session: AsyncSession):
        self.session = session

    def _check_session(self):
        if self.session is None:
            logger.critical(f"Database session not available for {type(self).__name__}")
            raise ConnectionError("Database session not available.")

    async def _add(self, instance):
        self._check_session()
        try:
            self.session.add(instance)
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"DB error creating {type(instance).__name__}: {e}", exc_info=True)
            raise

    async def _commit(self, description: str):
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"DB error while {description}: {e}", exc_info=True)
            raise

    def _order_by(self, params: PaginationParams, columns: Dict[str, object], default: str):
        column = columns.get(params.sort_field)
        if column is None:
            logger.warning(f"Unsupported sort field '{params.sort_field}', using '{default}'")
            column = columns[default]
        return column.desc() if params.descending else column.asc()


# --- User Repository ---
class UserRepository(BaseRepository):

    async def create(self, user: User) -> User:
        logger.info("Persisting new user")
        return await self._add(user)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Finds a user by email; returns None if no user matches."""
        self._check_session()
        try:
            return await self.session.scalar(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            logger.error(f"DB error finding user by email: {e}", exc_info=True)
            raise

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        self._check_session()
        try:
            return await self.session.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error(f"DB error finding user {user_id}: {e}", exc_info=True)
            raise


# --- Cinema Repository ---
class CinemaRepository(BaseRepository):
    SORTABLE = {"createdAt": Cinema.created_at, "name": Cinema.name, "capacity": Cinema.capacity}

    async def create(self, cinema: Cinema) -> Cinema:
        return await self._add(cinema)

    async def get_by_id(self, cinema_id: UUID) -> Optional[Cinema]:
        self._check_session()
        try:
            return await self.session.get(Cinema, cinema_id)
        except SQLAlchemyError as e:
            logger.error(f"DB error finding cinema {cinema_id}: {e}", exc_info=True)
            raise

    async def get_all_by_user_id(self, user_id: UUID, params: PaginationParams) -> Tuple[List[Cinema], int]:
        """Returns one page of a user's cinemas and the total number of cinemas they own."""
        self._check_session()
        try:
            total = await self.session.scalar(
                select(func.count()).select_from(Cinema).where(Cinema.user_id == user_id)
            )
            result = await self.session.scalars(
                select(Cinema)
                .where(Cinema.user_id == user_id)
                .order_by(self._order_by(params, self.SORTABLE, "createdAt"))
                .offset(params.offset)
                .limit(params.limit)
            )
            return list(result.all()), total or 0
        except SQLAlchemyError as e:
            logger.error(f"DB error listing cinemas for user {user_id}: {e}", exc_info=True)
            raise

    async def delete(self, cinema: Cinema) -> None:
        self._check_session()
        await self.session.delete(cinema)
        await self._commit(f"deleting cinema {cinema.id}")


# --- Movie Repository ---
class MovieRepository(BaseRepository):
    SORTABLE = {"createdAt": Movie.created_at, "title": Movie.title, "duration": Movie.duration}

    async def get_all_indicative_ratings(self) -> List[IndicativeRating]:
        self._check_session()
        try:
            result = await self.session.scalars(select(IndicativeRating).order_by(IndicativeRating.description))
            return list(result.all())
        except SQLAlchemyError as e:
            logger.error(f"DB error listing indicative ratings: {e}", exc_info=True)
            raise

    async def get_indicative_rating_by_id(self, rating_id: UUID) -> Optional[IndicativeRating]:
        self._check_session()
        try:
            return await self.session.get(IndicativeRating, rating_id)
        except SQLAlchemyError as e:
            logger.error(f"DB error finding indicative rating {rating_id}: {e}", exc_info=True)
            raise

    async def create(self, movie: Movie) -> Movie:
        movie = await self._add(movie)
        # Load relationships eagerly so the response can be built outside the session
        await self.session.refresh(movie, ["indicative_rating", "images"])
        return movie

    async def get_by_id(self, movie_id: UUID, include_deleted: bool = False) -> Optional[Movie]:
        """Finds a movie with its rating and images; soft-deleted movies are hidden by default."""
        self._check_session()
        query = select(Movie).where(Movie.id == movie_id)
        if not include_deleted:
            query = query.where(Movie.deleted_at.is_(None))
        try:
            return await self.session.scalar(query)
        except SQLAlchemyError as e:
            logger.error(f"DB error finding movie {movie_id}: {e}", exc_info=True)
            raise

    async def get_all_by_user_id(self, user_id: UUID, params: PaginationParams) -> Tuple[List[Movie], int]:
        self._check_session()
        condition = (Movie.user_id == user_id) & Movie.deleted_at.is_(None)
        try:
            total = await self.session.scalar(select(func.count()).select_from(Movie).where(condition))
            result = await self.session.scalars(
                select(Movie)
                .where(condition)
                .order_by(self._order_by(params, self.SORTABLE, "createdAt"))
                .offset(params.offset)
                .limit(params.limit)
            )
            return list(result.all()), total or 0
        except SQLAlchemyError as e:
            logger.error(f"DB error listing movies for user {user_id}: {e}", exc_info=True)
            raise

    async def update(self, movie: Movie) -> Movie:
        self._check_session()
        await self._commit(f"updating movie {movie.id}")
        await self.session.refresh(movie, ["indicative_rating", "images"])
        return movie

    async def soft_delete(self, movie: Movie) -> None:
        self._check_session()
        movie.deleted_at = datetime.now(timezone.utc)
        await self._commit(f"deleting movie {movie.id}")

    async def create_movie_image(self, movie_image: MovieImage) -> MovieImage:
        return await self._add(movie_image)

    async def delete_movie_image(self, storage_id: str) -> bool:
        """Deletes the MovieImage row for a remote identifier; returns False if none existed."""
        self._check_session()
        try:
            result = await self.session.execute(delete(MovieImage).where(MovieImage.storage_id == storage_id))
            await self.session.commit()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"DB error deleting movie image {storage_id}: {e}", exc_info=True)
            raise
