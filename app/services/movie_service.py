# app/services/movie_service.py

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import UUID

from app.core.errors import (
    ImageConversionError,
    ImageTooLargeError,
    ImageValidationError,
    IndicativeRatingNotFoundError,
    IndicativeRatingsNotFoundError,
    MovieNotBelongUserError,
    MovieNotFoundError,
)
from app.data_access.models import Movie, MovieImage
from app.data_access.redis_client import QueueError, TaskQueue
from app.data_access.repositories import MovieRepository
from app.data_access.storage_client import ObjectStorageClient
from app.models.auth import Session
from app.models.movie import (
    IndicativeRatingResponse,
    MovieCreatedResponse,
    MoviePayload,
    MovieResponse,
    MovieUpdatePayload,
)
from app.models.pagination import Page, PaginationData, PaginationParams
from app.models.task import MovieImageDeleteTask, MovieImageUploadTask
from app.utils.helpers import (
    ImageUpload,
    calculate_total_pages,
    convert_image_to_bytes,
    image_extension,
    validate_images,
)

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp")


class MovieService:
    """
    Movie catalog operations for cinema administrators.

    Image bytes never touch the object store inside a request: `create` and
    `delete` only enqueue tasks, and `process_upload_task` / `process_delete_task`
    are run by the queue worker.
    """
    def __init__(
        self,
        movie_repository: MovieRepository,
        storage_client: Optional[ObjectStorageClient] = None,
        upload_queue: Optional[TaskQueue[MovieImageUploadTask]] = None,
        delete_queue: Optional[TaskQueue[MovieImageDeleteTask]] = None,
        max_images: int = 5,
        max_image_size_bytes: int = 5 * 1024 * 1024,
        allowed_content_types: Sequence[str] = DEFAULT_ALLOWED_CONTENT_TYPES,
    ):
        self.movie_repository = movie_repository
        self.storage_client = storage_client
        self.upload_queue = upload_queue
        self.delete_queue = delete_queue
        self.max_images = max_images
        self.max_image_size_bytes = max_image_size_bytes
        self.allowed_content_types = allowed_content_types

    async def _get_owned(self, session: Session, movie_id: UUID) -> Movie:
        movie = await self.movie_repository.get_by_id(movie_id)
        if movie is None:
            logger.warning(f"Movie with ID {movie_id} not found in database.")
            raise MovieNotFoundError()
        if movie.user_id != session.user_id:
            logger.warning(f"Movie {movie_id} does not belong to user {session.user_id}")
            raise MovieNotBelongUserError()
        return movie

    async def _check_indicative_rating(self, rating_id: UUID) -> None:
        rating = await self.movie_repository.get_indicative_rating_by_id(rating_id)
        if rating is None:
            logger.warning(f"Indicative rating {rating_id} does not exist")
            raise IndicativeRatingNotFoundError()

    # --- Indicative ratings ---

    async def get_all_indicative_ratings(self) -> List[IndicativeRatingResponse]:
        ratings = await self.movie_repository.get_all_indicative_ratings()
        if not ratings:
            logger.warning("No indicative ratings found in database.")
            raise IndicativeRatingsNotFoundError()
        return [IndicativeRatingResponse.model_validate(rating) for rating in ratings]

    # --- Movies ---

    async def create(self, session: Session, payload: MoviePayload, images: Sequence[ImageUpload] = ()) -> MovieCreatedResponse:
        """
        Creates a movie and enqueues one upload task per readable image.

        Nothing is written when images or the indicative rating are invalid.
        An image that cannot be read is skipped; a task that cannot be queued
        is logged and does not fail the request.

        Raises:
            ImageValidationError: If image count, size or content type is invalid.
            IndicativeRatingNotFoundError: If the rating id is unknown.
            SQLAlchemyError: If the movie cannot be stored.
        """
        logger.info(f"Initializing movie creation for user {session.user_id}")

        errors = validate_images(images, self.max_images, self.max_image_size_bytes, self.allowed_content_types)
        if errors:
            logger.warning(f"Rejected {len(errors)} invalid image(s) for user {session.user_id}")
            raise ImageValidationError(errors)

        readable = []
        for index, image in enumerate(images):
            try:
                readable.append((image, await convert_image_to_bytes(image, self.max_image_size_bytes)))
            except ImageTooLargeError as e:
                logger.warning(f"Rejected oversized image for user {session.user_id}: {e}")
                errors.append({
                    "field": f"images[{index}]",
                    "message": f"Image exceeds the maximum size of {self.max_image_size_bytes} bytes",
                })
            except ImageConversionError as e:
                logger.error(f"Skipping image for user {session.user_id}: {e}")
        if errors:
            raise ImageValidationError(errors)

        await self._check_indicative_rating(payload.indicative_rating_id)

        movie = await self.movie_repository.create(
            Movie(
                indicative_rating_id=payload.indicative_rating_id,
                user_id=session.user_id,
                title=payload.title,
                duration=payload.duration,
            )
        )
        logger.info(f"Movie {movie.id} created; queuing {len(readable)} image(s)")

        queued = 0
        for image, data in readable:
            task = MovieImageUploadTask(
                movie_id=movie.id,
                user_id=session.user_id,
                image=data,
                content_type=(image.content_type or "image/jpeg").lower(),
            )
            if await self._push(self.upload_queue, task):
                queued += 1

        response = MovieCreatedResponse.model_validate(movie)
        response.queued_images = queued
        return response

    async def get_all_by_user_id(self, session: Session, params: PaginationParams) -> Page[MovieResponse]:
        movies, total = await self.movie_repository.get_all_by_user_id(session.user_id, params)
        total_pages = calculate_total_pages(total, params.limit)
        logger.info(f"Fetched {len(movies)} movies (page {params.page}/{total_pages}, total {total}) for user {session.user_id}")
        return Page[MovieResponse](
            pagination=PaginationData(
                total_items=total,
                total_pages=total_pages,
                current_page=params.page,
                page_size=params.limit,
            ),
            items=[MovieResponse.model_validate(movie) for movie in movies],
        )

    async def get_by_id(self, session: Session, movie_id: UUID) -> MovieResponse:
        return MovieResponse.model_validate(await self._get_owned(session, movie_id))

    async def update(self, session: Session, movie_id: UUID, payload: MovieUpdatePayload) -> MovieResponse:
        """
        Applies the fields present in the payload.

        Raises:
            MovieNotFoundError, MovieNotBelongUserError, IndicativeRatingNotFoundError
        """
        movie = await self._get_owned(session, movie_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            logger.info(f"No changes requested for movie {movie_id}")
            return MovieResponse.model_validate(movie)

        if "indicative_rating_id" in changes:
            await self._check_indicative_rating(changes["indicative_rating_id"])

        for field, value in changes.items():
            setattr(movie, field, value)
        movie = await self.movie_repository.update(movie)
        logger.info(f"Movie {movie_id} updated: {sorted(changes)}")
        return MovieResponse.model_validate(movie)

    async def delete(self, session: Session, movie_id: UUID) -> None:
        """
        Soft-deletes a movie and enqueues removal of its stored images.

        Ownership is checked before anything is written or queued.
        """
        movie = await self._get_owned(session, movie_id)
        storage_ids = [image.storage_id for image in movie.images]

        await self.movie_repository.soft_delete(movie)
        logger.info(f"Movie {movie_id} deleted; queuing removal of {len(storage_ids)} image(s)")

        for storage_id in storage_ids:
            await self._push(self.delete_queue, MovieImageDeleteTask(movie_id=movie_id, storage_id=storage_id))

    async def _push(self, queue: Optional[TaskQueue], task) -> bool:
        if queue is None:
            logger.error(f"No queue configured for task {task.task_id}")
            return False
        try:
            await queue.push(task)
            return True
        except QueueError as e:
            logger.error(f"Failed to queue task {task.task_id} for movie {task.movie_id}: {e}", exc_info=True)
            return False

    # --- Queue consumers ---

    async def process_upload_task(self, task: MovieImageUploadTask) -> Optional[MovieImage]:
        """
        Uploads the image bytes and records the resulting MovieImage.

        The row is written only after the store returns its URL and id.
        Tasks for movies deleted in the meantime are dropped without uploading.

        Returns:
            The stored MovieImage, or None if the movie no longer exists.

        Raises:
            ObjectStorageError: If the upload fails.
            SQLAlchemyError: If the row cannot be stored.
        """
        if self.storage_client is None:
            raise RuntimeError("Object storage client is not configured.")

        if await self.movie_repository.get_by_id(task.movie_id) is None:
            logger.warning(f"Movie {task.movie_id} no longer exists; dropping upload task {task.task_id}")
            return None

        timestamp = int(datetime.now(timezone.utc).timestamp())
        filename = f"movie_{task.movie_id}_image_{timestamp}.{image_extension(task.content_type)}"
        stored = await self.storage_client.upload_image(task.image, filename, task.content_type)

        movie_image = await self.movie_repository.create_movie_image(
            MovieImage(movie_id=task.movie_id, image_url=stored.url, storage_id=stored.id)
        )
        logger.info(f"Image {stored.id} stored for movie {task.movie_id}")
        return movie_image

    async def process_delete_task(self, task: MovieImageDeleteTask) -> None:
        """
        Removes the image from the store, then its MovieImage row.

        Raises:
            ObjectStorageError: If the remote delete fails; the row is kept.
            SQLAlchemyError: If the row cannot be deleted.
        """
        if self.storage_client is None:
            raise RuntimeError("Object storage client is not configured.")

        await self.storage_client.delete_image(task.storage_id)
        if not await self.movie_repository.delete_movie_image(task.storage_id):
            logger.warning(f"No MovieImage row found for {task.storage_id}")
        logger.info(f"Image {task.storage_id} removed for movie {task.movie_id}")
