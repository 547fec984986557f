import pytest
from fastapi import Response
from fastapi.testclient import TestClient

from conftest import ADMIN_SECRET, register
from gamelogd.db.kv_store import InMemoryKeyValueStore
from gamelogd.main import create_app
from gamelogd.preferences.errors import StoreUnavailableError
from gamelogd.preferences.models import UserPreferences
from gamelogd.preferences.reconciler import RATING_ERROR
from gamelogd.preferences.store import FALLBACK_WARNING, WriteResult
from gamelogd.web.routes.preferences import _written
from gamelogd.web.services.container import build_services

WITCHER = {
    "id": "1942",
    "title": "The Witcher 3: Wild Hunt",
    "coverImage": "https://images.igdb.com/igdb/image/upload/t_cover_big/co1wyy.jpg",
    "platforms": [{"id": 6, "name": "PC (Microsoft Windows)"}],
    "genres": [{"id": 12, "name": "Role-playing (RPG)"}],
    "firstReleaseDate": 1431993600,
}


class PreferencesOutageStore(InMemoryKeyValueStore):
    """Only the preference documents fail: all calls while ``down``, writes while ``writes_down``."""

    def __init__(self):
        super().__init__()
        self.down = False
        self.writes_down = False

    def _check(self, key, write=False):
        if key.startswith("preferences:") and (self.down or (write and self.writes_down)):
            raise StoreUnavailableError("Storage is temporarily unavailable. Please try again.")

    def get(self, key):
        self._check(key)
        return super().get(key)

    def set(self, key, value):
        self._check(key, write=True)
        super().set(key, value)

    def compare_and_set(self, key, expected, value):
        self._check(key, write=True)
        return super().compare_and_set(key, expected, value)


def rate(client, headers, game, rating):
    return client.post("/api/user/games/rate", headers=headers, json={"game": game, "rating": rating})


def test_rate_then_rerate(client, auth_headers):
    response = rate(client, auth_headers, WITCHER, 4.5)
    assert response.status_code == 200
    [rated] = response.json()["ratedGames"]
    assert rated["rating"] == 4.5
    assert rated["coverImage"] == WITCHER["coverImage"]
    assert rated["platforms"] == WITCHER["platforms"]
    assert rated["firstReleaseDate"] == WITCHER["firstReleaseDate"]
    assert rated["dateRated"].startswith("2025-03-01T12:00:00")

    response = rate(client, auth_headers, WITCHER, 3)
    assert [(g["id"], g["rating"]) for g in response.json()["ratedGames"]] == [("1942", 3.0)]

    stored = client.get("/api/user/preferences", headers=auth_headers).json()
    assert [(g["id"], g["rating"]) for g in stored["ratedGames"]] == [("1942", 3.0)]


def test_rating_zero_removes_game(client, auth_headers):
    rate(client, auth_headers, WITCHER, 4)
    response = rate(client, auth_headers, WITCHER, 0)
    assert response.status_code == 200
    assert response.json()["ratedGames"] == []


def test_numeric_game_id_is_stored_as_string(client, auth_headers):
    response = rate(client, auth_headers, {"id": 1942, "title": "The Witcher 3"}, 5)
    assert response.json()["ratedGames"][0]["id"] == "1942"

    rating = client.get("/api/user/games/1942/rating", headers=auth_headers).json()
    assert rating == {"gameId": "1942", "rating": 5.0}


@pytest.mark.parametrize("rating", [4.3, 5.5, -0.5, 10, True, "4.5", None])
def test_invalid_rating_is_rejected(client, auth_headers, rating):
    rate(client, auth_headers, WITCHER, 4)

    response = rate(client, auth_headers, WITCHER, rating)

    assert response.status_code == 400
    assert response.json() == {"detail": RATING_ERROR}
    stored = client.get("/api/user/preferences", headers=auth_headers).json()
    assert [(g["id"], g["rating"]) for g in stored["ratedGames"]] == [("1942", 4.0)]


@pytest.mark.parametrize("payload", [
    {"game": WITCHER},
    {"rating": 4},
    {"game": {"title": "No id"}, "rating": 4},
    {"game": {"id": "1", "title": "Hades"}, "rating": "lots"},
])
def test_malformed_rate_request_is_400(client, auth_headers, payload):
    response = client.post("/api/user/games/rate", headers=auth_headers, json=payload)
    assert response.status_code == 400


def test_remove_game(client, auth_headers):
    rate(client, auth_headers, WITCHER, 4)
    rate(client, auth_headers, {"id": "1", "title": "Hades"}, 5)

    response = client.request("DELETE", "/api/user/games/remove", headers=auth_headers, json={"gameId": "1942"})

    assert response.status_code == 200
    assert [g["id"] for g in response.json()["ratedGames"]] == ["1"]


def test_remove_unrated_game_is_not_an_error(client, auth_headers):
    response = client.request("DELETE", "/api/user/games/remove", headers=auth_headers, json={"gameId": "404"})
    assert response.status_code == 200
    assert response.json() == {"ratedGames": []}


def test_remove_requires_game_id(client, auth_headers):
    response = client.request("DELETE", "/api/user/games/remove", headers=auth_headers, json={})
    assert response.status_code == 400


def test_unrated_game_has_rating_zero(client, auth_headers):
    response = client.get("/api/user/games/777/rating", headers=auth_headers)
    assert response.json() == {"gameId": "777", "rating": 0.0}


def test_put_replaces_document(client, auth_headers):
    rate(client, auth_headers, WITCHER, 4)

    response = client.put("/api/user/preferences", headers=auth_headers, json={
        "ratedGames": [
            {"id": "1", "title": "Hades", "rating": 5},
            {"id": "2", "title": "Anthem", "rating": 0},
            {"id": "1", "title": "Hades", "rating": 4.5},
        ]
    })

    assert response.status_code == 200
    assert [(g["id"], g["rating"]) for g in response.json()["ratedGames"]] == [("1", 4.5)]
    stored = client.get("/api/user/preferences", headers=auth_headers).json()
    assert [(g["id"], g["rating"]) for g in stored["ratedGames"]] == [("1", 4.5)]


@pytest.mark.parametrize("rating", [4.2, True, "4"])
def test_put_rejects_invalid_rating(client, auth_headers, rating):
    response = client.put("/api/user/preferences", headers=auth_headers, json={
        "ratedGames": [{"id": "1", "title": "Hades", "rating": rating}]
    })
    assert response.status_code == 400
    assert client.get("/api/user/preferences", headers=auth_headers).json() == {"ratedGames": []}


def test_legacy_document_is_migrated_on_read(client, services, user, auth_headers):
    user_id = user["user"]["id"]
    services.kv.set_json(f"preferences:{user_id}", {
        "likedGames": [{"id": "1", "title": "Hades"}],
        "dislikedGames": [{"id": "2", "title": "Anthem"}],
    })

    body = client.get("/api/user/preferences", headers=auth_headers).json()

    assert [(g["id"], g["rating"]) for g in body["ratedGames"]] == [("1", 4.0), ("2", 2.0)]
    stored = services.kv.get_json(f"preferences:{user_id}")
    assert "likedGames" not in stored and "dislikedGames" not in stored


@pytest.mark.parametrize("method, path", [
    ("GET", "/api/user/preferences"),
    ("PUT", "/api/user/preferences"),
    ("POST", "/api/user/games/rate"),
    ("DELETE", "/api/user/games/remove"),
    ("GET", "/api/user/games/1/rating"),
])
def test_requires_token(client, method, path):
    response = client.request(method, path)
    assert response.status_code == 401
    assert response.json() == {"detail": "No token provided"}


def test_deleted_user_gets_404(client, user, auth_headers):
    deleted = client.request(
        "DELETE",
        "/api/admin/database",
        params={"userId": user["user"]["id"]},
        headers={"Authorization": f"Bearer {ADMIN_SECRET}"},
    )
    assert deleted.status_code == 200

    response = client.get("/api/user/preferences", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"detail": "User not found"}


def test_fallback_write_sets_warning_header(settings, clock, generator):
    kv = PreferencesOutageStore()
    services = build_services(settings, kv=kv, fallback=InMemoryKeyValueStore(), generator=generator, clock=clock)

    with TestClient(create_app(settings, services)) as client:
        token = register(client)["token"]
        headers = {"Authorization": f"Bearer {token}"}

        rate(client, headers, {"id": "1", "title": "Hades"}, 5)

        kv.writes_down = True
        response = rate(client, headers, WITCHER, 4)
        assert response.status_code == 200
        assert response.headers["Warning"] == f'199 gamelogd "{FALLBACK_WARNING}"'
        assert [(g["id"], g["rating"]) for g in response.json()["ratedGames"]] == [("1", 5.0), ("1942", 4.0)]

        kv.writes_down = False
        response = client.get("/api/user/preferences", headers=headers)
        assert "Warning" not in response.headers
        assert [g["id"] for g in response.json()["ratedGames"]] == ["1", "1942"]


def test_outage_with_no_fallback_copy_rejects_edit(settings, clock, generator):
    kv = PreferencesOutageStore()
    services = build_services(settings, kv=kv, fallback=InMemoryKeyValueStore(), generator=generator, clock=clock)

    with TestClient(create_app(settings, services)) as client:
        headers = {"Authorization": f"Bearer {register(client)['token']}"}
        rate(client, headers, {"id": "1", "title": "Hades"}, 5)

        kv.down = True
        response = rate(client, headers, WITCHER, 4)
        assert response.status_code == 500
        assert response.json() == {"detail": "Storage is temporarily unavailable. Please try again."}

        kv.down = False
        response = client.get("/api/user/preferences", headers=headers)
        assert [g["id"] for g in response.json()["ratedGames"]] == ["1"]


def test_store_outage_without_fallback_is_500(settings, clock, generator):
    kv = PreferencesOutageStore()
    services = build_services(settings, kv=kv, generator=generator, clock=clock)

    with TestClient(create_app(settings, services)) as client:
        token = register(client)["token"]

        kv.down = True
        response = client.get("/api/user/preferences", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Storage is temporarily unavailable. Please try again."}


def test_written_only_flags_degraded_results():
    response = Response()
    prefs = UserPreferences()

    assert _written(WriteResult(preferences=prefs), response) is prefs
    assert "Warning" not in response.headers

    _written(WriteResult(preferences=prefs, degraded=True, warning="saved elsewhere"), response)
    assert response.headers["Warning"] == '199 gamelogd "saved elsewhere"'
