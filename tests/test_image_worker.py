import asyncio

import pytest
from sqlalchemy import func, select

from app.core.config import settings
from app.data_access.models import MovieImage
from app.data_access.storage_client import ObjectStorageError
from app.workers.image_worker import ImageTaskWorker, build_queues

JPEG = b"\xff\xd8\xff\xe0-fake-jpeg"


@pytest.fixture
def worker(session_factory, storage_client, redis_client):
    upload_queue, delete_queue = build_queues(redis_client, settings)
    return ImageTaskWorker(session_factory, storage_client, upload_queue, delete_queue, poll_timeout=0.1)


async def create_movie_with_images(client, headers, rating_id, count=2):
    files = [("images", (f"poster{i}.jpg", JPEG, "image/jpeg")) for i in range(count)]
    data = {"title": "Dune", "duration": "155", "indicativeRatingId": str(rating_id)}
    res = await client.post("/v1/admin/movies", data=data, files=files, headers=headers)
    assert res.status_code == 201
    return res.json()


async def count_images(session_factory):
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(MovieImage))


async def test_upload_pipeline_end_to_end(client, auth_headers, rating_id, worker, storage_client, session_factory):
    movie = await create_movie_with_images(client, auth_headers, rating_id)
    assert await count_images(session_factory) == 0

    processed = await worker.drain()

    assert processed == 2
    assert storage_client.upload_image.await_count == 2
    res = await client.get(f"/v1/admin/movies/{movie['id']}", headers=auth_headers)
    images = res.json()["movieImages"]
    assert len(images) == 2
    assert all(img["imageUrl"].startswith("https://cdn.moviepass.test/movies/") for img in images)
    assert await worker.upload_queue.processing_size() == 0


async def test_delete_pipeline_end_to_end(client, auth_headers, rating_id, worker, storage_client, session_factory):
    movie = await create_movie_with_images(client, auth_headers, rating_id)
    await worker.drain()

    res = await client.delete(f"/v1/admin/movies/{movie['id']}", headers=auth_headers)
    assert res.status_code == 204
    assert await worker.delete_queue.size() == 2

    await worker.drain()

    assert storage_client.delete_image.await_count == 2
    assert await count_images(session_factory) == 0


async def test_upload_for_movie_deleted_before_processing(client, auth_headers, rating_id, worker, storage_client, session_factory):
    movie = await create_movie_with_images(client, auth_headers, rating_id, count=1)
    res = await client.delete(f"/v1/admin/movies/{movie['id']}", headers=auth_headers)
    assert res.status_code == 204

    processed = await worker.drain()

    assert processed == 1
    storage_client.upload_image.assert_not_awaited()
    assert await count_images(session_factory) == 0
    assert await worker.upload_queue.processing_size() == 0
    assert await worker.upload_queue.dead_letter_size() == 0


async def test_failed_upload_is_retried_then_dead_lettered(client, auth_headers, rating_id, worker, storage_client, session_factory):
    storage_client.upload_image.side_effect = ObjectStorageError("bucket unavailable")
    await create_movie_with_images(client, auth_headers, rating_id, count=1)

    processed = await worker.drain()

    assert processed == settings.QUEUE_MAX_ATTEMPTS
    assert await worker.upload_queue.dead_letter_size() == 1
    assert await worker.upload_queue.size() == 0
    assert await count_images(session_factory) == 0


async def test_recover_then_process_stranded_task(client, auth_headers, rating_id, worker, session_factory):
    await create_movie_with_images(client, auth_headers, rating_id, count=1)
    # Simulate a consumer that died after taking the task
    await worker.upload_queue.pop()

    assert await worker.drain() == 0
    assert await worker.recover() == 1
    assert await worker.drain() == 1
    assert await count_images(session_factory) == 1


async def test_run_stops_on_event(worker):
    stop_event = asyncio.Event()
    task = asyncio.create_task(worker.run(stop_event))
    await asyncio.sleep(0.05)

    stop_event.set()

    await asyncio.wait_for(task, timeout=2)
