import logging
from uuid import UUID

from app.core.errors import CinemaNotBelongUserError, CinemaNotFoundError
from app.data_access.models import Cinema
from app.data_access.repositories import CinemaRepository
from app.models.auth import Session
from app.models.cinema import CinemaPayload, CinemaResponse
from app.models.pagination import Page, PaginationData, PaginationParams
from app.utils.helpers import calculate_total_pages

logger = logging.getLogger(__name__)


class CinemaService:
    def __init__(self, cinema_repository: CinemaRepository):
        self.cinema_repository = cinema_repository

    async def _get_owned(self, session: Session, cinema_id: UUID) -> Cinema:
        cinema = await self.cinema_repository.get_by_id(cinema_id)
        if cinema is None:
            logger.warning(f"Cinema {cinema_id} not found")
            raise CinemaNotFoundError()
        if cinema.user_id != session.user_id:
            logger.warning(f"Cinema {cinema_id} does not belong to user {session.user_id}")
            raise CinemaNotBelongUserError()
        return cinema

    async def create(self, session: Session, payload: CinemaPayload) -> CinemaResponse:
        cinema = Cinema(user_id=session.user_id, **payload.model_dump())
        cinema = await self.cinema_repository.create(cinema)
        logger.info(f"Cinema {cinema.id} created by user {session.user_id}")
        return CinemaResponse.model_validate(cinema)

    async def get_all(self, session: Session, params: PaginationParams) -> Page[CinemaResponse]:
        cinemas, total = await self.cinema_repository.get_all_by_user_id(session.user_id, params)
        logger.info(f"Fetched {len(cinemas)} cinemas for user {session.user_id} (page {params.page}, total {total})")
        return Page[CinemaResponse](
            pagination=PaginationData(
                total_items=total,
                total_pages=calculate_total_pages(total, params.limit),
                current_page=params.page,
                page_size=params.limit,
            ),
            items=[CinemaResponse.model_validate(cinema) for cinema in cinemas],
        )

    async def get_by_id(self, session: Session, cinema_id: UUID) -> CinemaResponse:
        return CinemaResponse.model_validate(await self._get_owned(session, cinema_id))

    async def delete(self, session: Session, cinema_id: UUID) -> None:
        cinema = await self._get_owned(session, cinema_id)
        await self.cinema_repository.delete(cinema)
        logger.info(f"Cinema {cinema_id} deleted by user {session.user_id}")
