"""HTTP surface exercised through FastAPI's test client."""

from __future__ import annotations

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.config import Settings
from app.database import Database
from app.main import register_routes, wire_services

from conftest import TEST_HASH_ITERATIONS


def _build_app(database_url: str, **overrides) -> FastAPI:
    app_settings = Settings(
        _env_file=None,
        DATABASE_URL=database_url,
        PASSWORD_HASH_ITERATIONS=TEST_HASH_ITERATIONS,
        **overrides,
    )

    @asynccontextmanager
    async def test_lifespan(fastapi_app: FastAPI):
        database = Database(app_settings.database_url)
        await database.create_all()
        wire_services(fastapi_app, database, app_settings)
        try:
            yield
        finally:
            await database.dispose()

    fastapi_app = FastAPI(lifespan=test_lifespan)
    register_routes(fastapi_app)
    return fastapi_app


@pytest.fixture
def client(database_url):
    with TestClient(_build_app(database_url)) as test_client:
        yield test_client


FIGHT_CLUB = {
    "username": "alice",
    "tmdbId": 550,
    "type": "watched",
    "title": "Fight Club",
    "description": "An insomniac office worker and a soap maker form a fight club.",
    "releaseYear": 1999,
    "genre": "Drama",
    "director": "David Fincher",
    "imageUrl": "https://image.tmdb.org/t/p/w500/fight-club.jpg",
}


def _register(client: TestClient, username: str = "alice", password: str = "pw") -> None:
    response = client.post(
        "/api/user/register", json={"username": username, "password": password}
    )
    assert response.status_code == 200, response.text


def test_healthcheck(client) -> None:
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_register_login_me_logout(client) -> None:
    _register(client)
    assert client.get("/api/user/me").json() == {
        "authenticated": True,
        "username": "alice",
    }

    duplicate = client.post(
        "/api/user/register", json={"username": "alice", "password": "other"}
    )
    assert duplicate.status_code == 409
    assert duplicate.json() == {"message": "Username already taken"}

    client.post("/api/user/logout")
    anonymous = client.get("/api/user/me")
    assert anonymous.status_code == 401
    assert anonymous.json() == {"authenticated": False}

    bad_login = client.post(
        "/api/user/login", json={"username": "alice", "password": "nope"}
    )
    assert bad_login.status_code == 401

    login = client.post("/api/user/login", json={"username": "alice", "password": "pw"})
    assert login.status_code == 200
    assert login.json()["username"] == "alice"
    assert client.get("/api/user/me").json()["authenticated"] is True


def test_register_validates_body(client) -> None:
    response = client.post("/api/user/register", json={"username": "alice"})

    assert response.status_code == 400


def test_add_list_remove_movie(client) -> None:
    _register(client)

    for _ in range(2):
        added = client.post("/api/user/movielist/watched/add", json=FIGHT_CLUB)
        assert added.status_code == 200
        assert added.json() == {"message": "Has been added to watched"}

    listed = client.get("/api/user/movielist/watched", params={"username": "alice"})
    assert listed.status_code == 200
    entries = listed.json()
    assert len(entries) == 1
    entry = entries[0]
    assert entry["type"] == "watched"
    assert entry["movie"]["tmdbId"] == 550
    assert entry["movie"]["title"] == "Fight Club"
    assert entry["movie"]["releaseYear"] == 1999
    assert entry["movie"]["imageUrl"] == FIGHT_CLUB["imageUrl"]
    assert "user" not in entry

    removed = client.post(
        "/api/user/movielist/watched/remove",
        json={"username": "alice", "tmdbId": 550, "type": "watched"},
    )
    assert removed.status_code == 200
    assert removed.json() == {"message": "Has been removed from watched"}
    assert client.get(
        "/api/user/movielist/watched", params={"username": "alice"}
    ).json() == []


def test_show_list_uses_show_records(client) -> None:
    _register(client)
    payload = {"username": "alice", "tmdbId": 1399, "title": "Game of Thrones"}

    added = client.post("/api/user/showlist/favourites/add", json=payload)
    listed = client.get("/api/user/showlist/favourites", params={"username": "alice"})

    assert added.json() == {"message": "Has been added to favourites"}
    assert [entry["show"]["title"] for entry in listed.json()] == ["Game of Thrones"]
    assert client.get(
        "/api/user/movielist/favourites", params={"username": "alice"}
    ).json() == []


def test_unknown_user_and_item_return_not_found(client) -> None:
    missing_user = client.post(
        "/api/user/movielist/watched/add", json={**FIGHT_CLUB, "username": "mallory"}
    )
    assert missing_user.status_code == 404
    assert missing_user.json() == {"message": "The User or Movie was not found"}

    _register(client)
    missing_show = client.post(
        "/api/user/showlist/watched/remove", json={"username": "alice", "tmdbId": 1}
    )
    assert missing_show.status_code == 404
    assert missing_show.json() == {"message": "The User or Show was not found"}

    assert client.get("/api/movies").json() == []


def test_list_for_unknown_user_is_empty(client) -> None:
    response = client.get("/api/user/movielist/watchlist", params={"username": "ghost"})

    assert response.status_code == 200
    assert response.json() == []


def test_unknown_category_is_rejected(client) -> None:
    _register(client)

    response = client.post("/api/user/movielist/someday/add", json=FIGHT_CLUB)

    assert response.status_code == 400
    assert "Unknown list category" in response.json()["message"]


def test_lax_categories_can_be_enabled(database_url) -> None:
    with TestClient(_build_app(database_url, STRICT_CATEGORIES=False)) as lax_client:
        _register(lax_client)
        response = lax_client.post("/api/user/movielist/someday/add", json=FIGHT_CLUB)
        listed = lax_client.get(
            "/api/user/movielist/someday", params={"username": "alice"}
        )

    assert response.json() == {"message": "Has been added to someday"}
    assert len(listed.json()) == 1


def test_unknown_catalog_segment(client) -> None:
    response = client.get("/api/user/booklist/watched", params={"username": "alice"})

    assert response.status_code == 404
    assert "Unknown catalog" in response.json()["detail"]


def test_catalog_ingest_and_title_lookup(client) -> None:
    created = client.post(
        "/api/movies", json={"tmdbId": 603, "title": "The Matrix", "year": "1999-03-31"}
    )
    again = client.post("/api/movies", json={"tmdbId": 603, "title": "Other"})

    assert created.status_code == 200
    assert created.json()["releaseYear"] == 1999
    assert again.json()["id"] == created.json()["id"]
    assert again.json()["title"] == "The Matrix"

    found = client.get("/api/movies", params={"title": "The Matrix"})
    missing = client.get("/api/movies", params={"title": "Matrix"})
    assert [item["tmdbId"] for item in found.json()] == [603]
    assert missing.json() == []
    assert client.get("/api/shows").json() == []


def test_catalog_ingest_requires_identifier(client) -> None:
    response = client.post("/api/shows", json={"title": "No id"})

    assert response.status_code == 400


def test_malformed_bodies_are_rejected(client) -> None:
    _register(client)

    not_utf8 = client.post(
        "/api/user/movielist/watched/add",
        content=b'{"username": "\xff\xfe"}',
        headers={"content-type": "application/json"},
    )
    not_json = client.post(
        "/api/user/movielist/watched/add",
        content=b"{username:",
        headers={"content-type": "application/json"},
    )
    not_object = client.post("/api/user/movielist/watched/add", json=[1, 2])

    assert not_utf8.status_code == 400
    assert not_json.status_code == 400
    assert not_object.status_code == 400
    assert not_utf8.json() == {"detail": "Invalid payload"}
