# Redis cache and task queue access
# app/data_access/redis_client.py

import json
import logging
from dataclasses import dataclass
from typing import Any, Generic, Optional, Type, TypeVar

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from app.models.task import TaskMessage

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=TaskMessage)


class CacheError(Exception):
    """Raised by strict cache operations when Redis cannot be reached."""
    pass


class CacheRepository:
    """
    Provides structured access to Redis for caching operations.
    Assumes a configured redis.Redis client instance is provided.
    """
    def __init__(self, client: redis.Redis):
        self.client = client
        logger.debug("Initialized CacheRepository.")

    def _check_client(self):
        """Helper to check if Redis client is available."""
        if self.client is None:
            logger.critical("Redis client not available.")
            raise ConnectionError("Redis client connection not available.")

    async def get(self, key: str, strict: bool = False) -> Optional[Any]:
        """
        Gets a value from cache, attempting to deserialize JSON if possible.

        A Redis failure reads as a miss unless `strict` is set.

        Raises:
            CacheError: If `strict` is set and Redis cannot be reached.
        """
        self._check_client()
        try:
            value = await self.client.get(key)
            if value is None:
                logger.debug(f"Cache miss for key: {key}")
                return None

            logger.debug(f"Cache hit for key: {key}")
            try:
                if isinstance(value, str) and value.startswith(('[', '{')):
                    return json.loads(value)
                return value
            except json.JSONDecodeError:
                logger.warning(f"Failed to decode JSON from cache key {key}. Returning raw value.")
                return value
        except RedisError as e:
            logger.error(f"Redis GET error for key {key}: {e}", exc_info=True)
            if strict:
                raise CacheError(f"Failed to read {key}: {e}") from e
            # Treat cache error as a cache miss
            return None

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Sets a value in cache, serializing complex types to JSON."""
        self._check_client()
        try:
            if isinstance(value, (list, dict)):
                value_to_set = json.dumps(value, default=str)
            elif isinstance(value, (int, float, bytes, str)):
                value_to_set = value
            else:
                logger.warning(f"Attempting to cache non-standard type {type(value)} for key {key}. Converting to string.")
                value_to_set = str(value)

            logger.debug(f"Setting cache for key: {key} with TTL: {ttl_seconds}s")
            await self.client.set(key, value_to_set, ex=ttl_seconds)
            return True
        except RedisError as e:
            logger.error(f"Redis SET error for key {key}: {e}", exc_info=True)
            return False

    async def delete(self, key: str, strict: bool = False) -> bool:
        """
        Deletes a key from the cache.

        Raises:
            CacheError: If `strict` is set and Redis cannot be reached.
        """
        self._check_client()
        try:
            deleted_count = await self.client.delete(key)
            logger.debug(f"Deleted {deleted_count} keys for: {key}")
            return deleted_count > 0
        except RedisError as e:
            logger.error(f"Redis DELETE error for key {key}: {e}", exc_info=True)
            if strict:
                raise CacheError(f"Failed to delete {key}: {e}") from e
            return False


class QueueError(Exception):
    """Raised when the task queue cannot be reached."""
    pass


@dataclass
class Delivery(Generic[T]):
    """A task taken from the queue, together with the raw message that must be acknowledged."""
    task: T
    raw: str


class TaskQueue(Generic[T]):
    """
    At-least-once task queue over Redis lists.

    Producers LPUSH onto `<name>`. A consumer atomically moves the oldest message
    to `<name>:processing` and removes it only after `ack`. Failed deliveries are
    re-queued with an incremented attempt counter until `max_attempts`, after
    which they are parked on `<name>:dead`.
    """
    def __init__(self, client: redis.Redis, name: str, task_type: Type[T], max_attempts: int = 3):
        self.client = client
        self.name = name
        self.processing_name = f"{name}:processing"
        self.dead_letter_name = f"{name}:dead"
        self.task_type = task_type
        self.max_attempts = max_attempts

    async def push(self, task: T) -> None:
        """
        Enqueues a task.

        Raises:
            QueueError: If Redis rejects the write.
        """
        try:
            await self.client.lpush(self.name, task.model_dump_json(by_alias=True))
            logger.debug(f"Pushed task {task.task_id} onto {self.name}")
        except RedisError as e:
            raise QueueError(f"Failed to push task {task.task_id} onto {self.name}: {e}") from e

    async def pop(self, timeout: float = 0) -> Optional[Delivery[T]]:
        """
        Takes the oldest task and moves it to the processing list.

        Args:
            timeout: Seconds to block waiting for a task. 0 returns immediately.

        Returns:
            The delivery, or None if the queue is empty.

        Raises:
            QueueError: If Redis cannot be reached.
        """
        try:
            if timeout > 0:
                raw = await self.client.blmove(self.name, self.processing_name, timeout, "RIGHT", "LEFT")
            else:
                raw = await self.client.lmove(self.name, self.processing_name, "RIGHT", "LEFT")
        except RedisError as e:
            raise QueueError(f"Failed to pop from {self.name}: {e}") from e

        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")

        try:
            task = self.task_type.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Undecodable message on {self.name}, moving to dead-letter list: {e}")
            await self._move(raw, self.dead_letter_name, raw)
            return None
        return Delivery(task=task, raw=raw)

    async def ack(self, delivery: Delivery[T]) -> None:
        """Removes a successfully processed task from the processing list."""
        try:
            await self.client.lrem(self.processing_name, 1, delivery.raw)
        except RedisError as e:
            raise QueueError(f"Failed to acknowledge task {delivery.task.task_id}: {e}") from e

    async def nack(self, delivery: Delivery[T]) -> bool:
        """
        Returns a failed task to the queue, or dead-letters it once attempts are exhausted.

        Returns:
            True if the task was re-queued, False if it was dead-lettered.
        """
        task = delivery.task.model_copy(update={"attempts": delivery.task.attempts + 1})
        retry = task.attempts < self.max_attempts
        destination = self.name if retry else self.dead_letter_name
        await self._move(delivery.raw, destination, task.model_dump_json(by_alias=True))
        if retry:
            logger.warning(f"Task {task.task_id} re-queued on {self.name} (attempt {task.attempts}/{self.max_attempts})")
        else:
            logger.error(f"Task {task.task_id} moved to {self.dead_letter_name} after {task.attempts} attempts")
        return retry

    async def recover(self) -> int:
        """Moves messages stranded in the processing list (consumer crash) back onto the queue."""
        recovered = 0
        try:
            while await self.client.lmove(self.processing_name, self.name, "RIGHT", "RIGHT") is not None:
                recovered += 1
        except RedisError as e:
            raise QueueError(f"Failed to recover {self.processing_name}: {e}") from e
        if recovered:
            logger.warning(f"Recovered {recovered} unacknowledged tasks onto {self.name}")
        return recovered

    async def size(self) -> int:
        return await self.client.llen(self.name)

    async def processing_size(self) -> int:
        return await self.client.llen(self.processing_name)

    async def dead_letter_size(self) -> int:
        return await self.client.llen(self.dead_letter_name)

    async def _move(self, raw: str, destination: str, payload: str) -> None:
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.lrem(self.processing_name, 1, raw)
                pipe.lpush(destination, payload)
                await pipe.execute()
        except RedisError as e:
            raise QueueError(f"Failed to move message from {self.processing_name} to {destination}: {e}") from e
