"""
Movie image queue consumer.

Runs standalone through the `moviepass-worker` script, or inside the API
process when RUN_QUEUE_WORKER is set.
"""
import asyncio
import logging
import signal
import sys
from typing import Optional

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.data_access.redis_client import Delivery, QueueError, TaskQueue
from app.data_access.repositories import MovieRepository
from app.data_access.storage_client import ObjectStorageClient
from app.models.task import MovieImageDeleteTask, MovieImageUploadTask
from app.services.movie_service import MovieService

logger = logging.getLogger(__name__)


class ImageTaskWorker:
    """Pulls one task at a time from the upload and delete queues and processes it."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        storage_client: ObjectStorageClient,
        upload_queue: TaskQueue[MovieImageUploadTask],
        delete_queue: TaskQueue[MovieImageDeleteTask],
        poll_timeout: float = 5,
    ):
        self.session_factory = session_factory
        self.storage_client = storage_client
        self.upload_queue = upload_queue
        self.delete_queue = delete_queue
        self.poll_timeout = poll_timeout

    async def recover(self) -> int:
        """Re-queues tasks left unacknowledged by a previous worker."""
        return await self.upload_queue.recover() + await self.delete_queue.recover()

    async def process_next_upload(self, timeout: float = 0) -> bool:
        """Processes one upload task. Returns False if the queue was empty."""
        delivery = await self.upload_queue.pop(timeout)
        if delivery is None:
            return False
        await self._handle(self.upload_queue, delivery, "process_upload_task")
        return True

    async def process_next_delete(self, timeout: float = 0) -> bool:
        """Processes one delete task. Returns False if the queue was empty."""
        delivery = await self.delete_queue.pop(timeout)
        if delivery is None:
            return False
        await self._handle(self.delete_queue, delivery, "process_delete_task")
        return True

    async def _handle(self, queue: TaskQueue, delivery: Delivery, operation: str) -> None:
        task = delivery.task
        logger.info(f"Processing task {task.task_id} from {queue.name} (movie {task.movie_id})")
        try:
            async with self.session_factory() as session:
                service = MovieService(MovieRepository(session), storage_client=self.storage_client)
                await getattr(service, operation)(task)
        except Exception as e:
            logger.error(f"Task {task.task_id} from {queue.name} failed: {e}", exc_info=True)
            await queue.nack(delivery)
            return
        await queue.ack(delivery)
        logger.info(f"Task {task.task_id} from {queue.name} completed")

    async def drain(self) -> int:
        """Processes tasks until both queues are empty; returns how many were handled."""
        processed = 0
        while True:
            handled_upload = await self.process_next_upload()
            handled_delete = await self.process_next_delete()
            if not handled_upload and not handled_delete:
                return processed
            processed += int(handled_upload) + int(handled_delete)

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Consumes both queues until `stop_event` is set."""
        stop_event = stop_event or asyncio.Event()
        logger.info(f"Image worker listening on {self.upload_queue.name} and {self.delete_queue.name}")
        while not stop_event.is_set():
            try:
                handled = await self.process_next_upload()
                handled = await self.process_next_delete() or handled
                if not handled:
                    # Block on the upload queue, which carries most of the traffic
                    await self.process_next_upload(self.poll_timeout)
            except QueueError as e:
                logger.error(f"Queue unavailable, retrying in {self.poll_timeout}s: {e}")
                await asyncio.sleep(self.poll_timeout)
        logger.info("Image worker stopped")


def build_queues(client: redis.Redis, settings):
    upload_queue = TaskQueue(client, settings.UPLOAD_QUEUE_NAME, MovieImageUploadTask, settings.QUEUE_MAX_ATTEMPTS)
    delete_queue = TaskQueue(client, settings.DELETE_QUEUE_NAME, MovieImageDeleteTask, settings.QUEUE_MAX_ATTEMPTS)
    return upload_queue, delete_queue


def build_storage_client(settings) -> ObjectStorageClient:
    return ObjectStorageClient(
        bucket_name=settings.STORAGE_BUCKET_NAME,
        public_base_url=settings.STORAGE_PUBLIC_BASE_URL,
        endpoint_url=settings.STORAGE_ENDPOINT_URL,
        access_key=settings.STORAGE_ACCESS_KEY.get_secret_value() if settings.STORAGE_ACCESS_KEY else None,
        secret_key=settings.STORAGE_SECRET_KEY.get_secret_value() if settings.STORAGE_SECRET_KEY else None,
        region=settings.STORAGE_REGION,
        key_prefix=settings.STORAGE_KEY_PREFIX,
    )


async def _serve() -> None:
    from app.core.config import settings
    from app.data_access.database import create_engine, create_session_factory

    engine = create_engine(settings.DATABASE_URL.get_secret_value(), echo=settings.DATABASE_ECHO)
    client = redis.from_url(settings.REDIS_URL.get_secret_value(), encoding="utf-8", decode_responses=True)
    upload_queue, delete_queue = build_queues(client, settings)
    worker = ImageTaskWorker(
        create_session_factory(engine),
        build_storage_client(settings),
        upload_queue,
        delete_queue,
        poll_timeout=settings.QUEUE_POLL_TIMEOUT_SECONDS,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await client.ping()
        await worker.recover()
        await worker.run(stop_event)
    finally:
        await client.aclose()
        await engine.dispose()
        logger.info("Worker connections closed.")


def main() -> None:
    logging.basicConfig(
        level="INFO",
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout,
    )
    logger.info("Starting MoviePass image worker...")
    asyncio.run(_serve())


if __name__ == "__main__":
    main()
