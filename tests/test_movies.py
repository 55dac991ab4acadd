from uuid import uuid4

from sqlalchemy import delete

from app.core.config import settings
from app.data_access.models import IndicativeRating

JPEG = b"\xff\xd8\xff\xe0-fake-jpeg"


def movie_form(rating_id, **overrides):
    data = {"title": "Dune", "duration": "155", "indicativeRatingId": str(rating_id)}
    data.update(overrides)
    return data


async def create_movie(client, headers, rating_id, images=(), **overrides):
    files = [("images", (f"poster{i}.jpg", data, "image/jpeg")) for i, data in enumerate(images)]
    return await client.post(
        "/v1/admin/movies", data=movie_form(rating_id, **overrides), files=files or None, headers=headers
    )


async def test_list_indicative_ratings(client):
    res = await client.get("/v1/admin/movies/indicative-rating")
    assert res.status_code == 200
    assert sorted(r["description"] for r in res.json()) == ["10", "12", "14", "16", "18", "L"]
    assert all(r["imageUrl"] for r in res.json())


async def test_list_indicative_ratings_empty(client, session_factory):
    async with session_factory() as session:
        await session.execute(delete(IndicativeRating))
        await session.commit()

    res = await client.get("/v1/admin/movies/indicative-rating")
    assert res.status_code == 404


async def test_create_movie_queues_images(client, auth_headers, rating_id, redis_client):
    res = await create_movie(client, auth_headers, rating_id, images=[JPEG, JPEG])

    assert res.status_code == 201
    body = res.json()
    assert body["title"] == "Dune"
    assert body["duration"] == 155
    assert body["indicativeRating"]["description"] == "14"
    assert body["movieImages"] == []
    assert body["queuedImages"] == 2
    assert await redis_client.llen(settings.UPLOAD_QUEUE_NAME) == 2


async def test_create_movie_without_images(client, auth_headers, rating_id, redis_client):
    res = await create_movie(client, auth_headers, rating_id)

    assert res.status_code == 201
    assert res.json()["queuedImages"] == 0
    assert await redis_client.llen(settings.UPLOAD_QUEUE_NAME) == 0


async def test_create_movie_unknown_rating(client, auth_headers, redis_client):
    res = await create_movie(client, auth_headers, uuid4(), images=[JPEG])

    assert res.status_code == 404
    assert res.json()["title"] == "Indicative rating not found"
    assert await redis_client.llen(settings.UPLOAD_QUEUE_NAME) == 0
    assert (await client.get("/v1/admin/movies", headers=auth_headers)).json()["pagination"]["totalItems"] == 0


async def test_create_movie_invalid_fields(client, auth_headers, rating_id):
    res = await create_movie(client, auth_headers, rating_id, title="  ", duration="-5")

    assert res.status_code == 422
    assert res.json()["errors"] == [
        {"field": "title", "message": "This field is required"},
        {"field": "duration", "message": "Input should be greater than 0"},
    ]


async def test_create_movie_rejects_unsupported_image(client, auth_headers, rating_id):
    res = await client.post(
        "/v1/admin/movies",
        data=movie_form(rating_id),
        files=[("images", ("anim.gif", b"GIF89a", "image/gif"))],
        headers=auth_headers,
    )

    assert res.status_code == 422
    assert res.json()["errors"][0]["field"] == "images[0]"


async def test_create_movie_requires_authentication(client, rating_id):
    res = await create_movie(client, {}, rating_id)
    assert res.status_code == 401


async def test_list_movies(client, auth_headers, other_auth_headers, rating_id):
    for title in ("Alien", "Blade Runner"):
        await create_movie(client, auth_headers, rating_id, title=title)
    await create_movie(client, other_auth_headers, rating_id, title="Foreign")

    res = await client.get("/v1/admin/movies", params={"sort": "title"}, headers=auth_headers)

    assert res.status_code == 200
    body = res.json()
    assert body["pagination"] == {"totalItems": 2, "totalPages": 1, "currentPage": 1, "pageSize": 10}
    assert [m["title"] for m in body["items"]] == ["Alien", "Blade Runner"]


async def test_get_movie(client, auth_headers, other_auth_headers, rating_id):
    movie = (await create_movie(client, auth_headers, rating_id)).json()

    res = await client.get(f"/v1/admin/movies/{movie['id']}", headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["title"] == "Dune"

    res = await client.get(f"/v1/admin/movies/{movie['id']}", headers=other_auth_headers)
    assert res.status_code == 403


async def test_update_movie(client, auth_headers, rating_id):
    movie = (await create_movie(client, auth_headers, rating_id)).json()

    res = await client.patch(
        f"/v1/admin/movies/{movie['id']}", json={"title": "Dune: Part One", "duration": 156}, headers=auth_headers
    )

    assert res.status_code == 200
    assert res.json()["title"] == "Dune: Part One"
    assert res.json()["duration"] == 156
    assert res.json()["indicativeRating"]["description"] == "14"


async def test_update_movie_unknown_rating(client, auth_headers, rating_id):
    movie = (await create_movie(client, auth_headers, rating_id)).json()

    res = await client.patch(
        f"/v1/admin/movies/{movie['id']}", json={"indicativeRatingId": str(uuid4())}, headers=auth_headers
    )
    assert res.status_code == 404


async def test_delete_movie_by_other_user(client, auth_headers, other_auth_headers, rating_id, redis_client):
    movie = (await create_movie(client, auth_headers, rating_id)).json()

    res = await client.delete(f"/v1/admin/movies/{movie['id']}", headers=other_auth_headers)

    assert res.status_code == 403
    assert await redis_client.llen(settings.DELETE_QUEUE_NAME) == 0
    assert (await client.get(f"/v1/admin/movies/{movie['id']}", headers=auth_headers)).status_code == 200


async def test_delete_movie(client, auth_headers, rating_id):
    movie = (await create_movie(client, auth_headers, rating_id)).json()

    res = await client.delete(f"/v1/admin/movies/{movie['id']}", headers=auth_headers)
    assert res.status_code == 204

    assert (await client.get(f"/v1/admin/movies/{movie['id']}", headers=auth_headers)).status_code == 404
    assert (await client.get("/v1/admin/movies", headers=auth_headers)).json()["items"] == []


async def test_delete_unknown_movie(client, auth_headers):
    res = await client.delete(f"/v1/admin/movies/{uuid4()}", headers=auth_headers)
    assert res.status_code == 404
