"""Pytest fixtures shared across the test suite."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from gamelogd.config import Settings
from gamelogd.db.kv_store import InMemoryKeyValueStore
from gamelogd.main import create_app
from gamelogd.preferences.errors import StoreUnavailableError
from gamelogd.preferences.models import GameRecommendation
from gamelogd.preferences.recommendation_gate import RecommendationCacheGate, RecommendationGenerator
from gamelogd.preferences.reconciler import RatingReconciler
from gamelogd.preferences.store import PreferenceStore
from gamelogd.web.services.container import build_services

ADMIN_SECRET = "test-admin-secret"
PASSWORD = "Sup3rSecret"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeGenerator(RecommendationGenerator):
    """Counts calls; returns numbered recommendations or raises ``error``."""

    def __init__(self):
        self.calls = []
        self.error = None
        self.on_generate = None

    def generate(self, rated_games, count):
        self.calls.append((list(rated_games), count))
        if self.on_generate is not None:
            self.on_generate()
        if self.error is not None:
            raise self.error
        batch = len(self.calls)
        return [
            GameRecommendation(
                id=f"rec-{batch}-{i}",
                title=f"Recommendation {batch}.{i}",
                explanation="Matches your taste",
                match_score=90
            )
            for i in range(count)
        ]


class FlakyStore(InMemoryKeyValueStore):
    """
    In-memory store that raises StoreUnavailableError while ``down``.

    ``writes_down`` fails writes only, like a primary that lost its
    connection between the read and the write of one request.
    """

    name = "flaky"

    def __init__(self):
        super().__init__()
        self.down = False
        self.writes_down = False

    def _check(self, write=False):
        if self.down or (write and self.writes_down):
            raise StoreUnavailableError("Storage is temporarily unavailable. Please try again.")

    def get(self, key):
        self._check()
        return super().get(key)

    def set(self, key, value):
        self._check(write=True)
        super().set(key, value)

    def delete(self, key):
        self._check(write=True)
        super().delete(key)

    def compare_and_set(self, key, expected, value):
        self._check(write=True)
        return super().compare_and_set(key, expected, value)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv, clock):
    return PreferenceStore(kv, clock=clock)


@pytest.fixture
def reconciler(store, clock):
    return RatingReconciler(store, clock=clock)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def gate(store, generator, clock):
    return RecommendationCacheGate(store, generator, clock=clock)


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("ADMIN_SECRET", ADMIN_SECRET)
    monkeypatch.setenv("JWT_SECRET_KEY", "test-jwt-secret")
    return Settings()


@pytest.fixture
def services(settings, kv, generator, clock):
    return build_services(settings, kv=kv, generator=generator, clock=clock)


@pytest.fixture
def client(settings, services):
    with TestClient(create_app(settings, services)) as test_client:
        yield test_client


def register(client, email="player@example.com", username="player"):
    response = client.post("/api/auth/register", json={
        "username": username,
        "email": email,
        "password": PASSWORD,
        "confirmPassword": PASSWORD,
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def register_user(client):
    def _register(email="player@example.com", username="player"):
        return register(client, email=email, username=username)
    return _register


@pytest.fixture
def user(register_user):
    return register_user()


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {user['token']}"}
