import asyncio

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from review_sentiment_v1 import api as api_module
from review_sentiment_v1.hosted import HostedModelError
from review_sentiment_v1.models import HostedVerdict, SentimentAnalyzerInput, SentimentResult
from review_sentiment_v1.storage import ReviewStore


class FailingStore:
    def create_review(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        raise RuntimeError("database is down")


class UnreachableStore:
    def ping(self) -> bool:
        return False

    def get_user_reviews(self, user_id: int):  # type: ignore[no-untyped-def]
        raise AssertionError("reviews must not be queried when the database is unreachable")


class FakeHosted:
    def __init__(self, verdict=None, error=None):  # type: ignore[no-untyped-def]
        self.verdict = verdict
        self.error = error

    async def classify(self, review_text: str) -> HostedVerdict:
        if self.error is not None:
            raise self.error
        return self.verdict


@pytest.fixture
def store():  # type: ignore[no-untyped-def]
    review_store = ReviewStore("sqlite://")
    yield review_store
    review_store.close()


@pytest.fixture
def client(store, monkeypatch):  # type: ignore[no-untyped-def]
    monkeypatch.setattr(api_module, "RATE_LIMIT_MAX_REQUESTS", 1000)
    api_module._rate_limit_events.clear()
    api_module._idempotency_cache.clear()
    api_module.app.dependency_overrides[api_module.get_optional_store] = lambda: store
    api_module.app.dependency_overrides[api_module.get_hosted] = lambda: None
    yield TestClient(api_module.app)
    api_module.app.dependency_overrides.clear()


def test_healthz(client) -> None:  # type: ignore[no-untyped-def]
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/api/analyze-sentiment").json()["message"] == "Movie Review Sentiment Analysis API"


def test_analyze_returns_camel_case_result(client) -> None:  # type: ignore[no-untyped-def]
    response = client.post("/api/analyze-sentiment", json={"reviewText": "An amazing, must-see film"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["reviewText"] == "An amazing, must-see film"
    assert data["sentiment"] == "positive"
    assert data["label"] == "positive"
    assert data["positiveWords"] == ["amazing"]
    assert data["phrasesMatched"] == ["must-see"]
    assert data["positiveCount"] == 1
    assert data["negationsDetected"] == []


def test_analyze_rejects_blank_review(client) -> None:  # type: ignore[no-untyped-def]
    assert client.post("/api/analyze-sentiment", json={"reviewText": "   "}).status_code == 422
    assert client.post("/api/analyze-sentiment", json={}).status_code == 422


def test_analyze_persists_for_logged_in_user(client, store) -> None:  # type: ignore[no-untyped-def]
    user = store.create_user("alice", "secret")

    response = client.post(
        "/api/analyze-sentiment",
        json={"reviewText": "Boring and predictable", "userId": user.user_id},
    )
    assert response.status_code == 200
    assert response.json()["data"]["sentiment"] == "negative"

    reviews = client.get("/api/user-reviews", params={"userId": user.user_id}).json()
    assert reviews["success"] is True
    assert len(reviews["data"]) == 1
    assert reviews["data"][0]["reviewText"] == "Boring and predictable"
    assert reviews["data"][0]["sentiment"] == "Negative"


def test_storage_failure_does_not_change_result(client) -> None:  # type: ignore[no-untyped-def]
    expected = client.post("/api/analyze-sentiment", json={"reviewText": "not terrible"}).json()

    api_module.app.dependency_overrides[api_module.get_optional_store] = lambda: FailingStore()
    response = client.post("/api/analyze-sentiment", json={"reviewText": "not terrible", "userId": 7})

    assert response.status_code == 200
    assert response.json() == expected


def test_unknown_user_is_absorbed(client, store) -> None:  # type: ignore[no-untyped-def]
    response = client.post("/api/analyze-sentiment", json={"reviewText": "great", "userId": 42})

    assert response.status_code == 200
    assert store.get_all_reviews() == []


def test_login_flow(client) -> None:  # type: ignore[no-untyped-def]
    signup = client.post("/api/login", json={"username": "alice", "password": "secret", "action": "signup"})
    assert signup.status_code == 200
    assert signup.json()["data"]["username"] == "alice"
    user_id = signup.json()["data"]["userId"]

    login = client.post("/api/login", json={"username": "alice", "password": "secret", "action": "login"})
    assert login.json()["data"] == {"userId": user_id, "username": "alice"}

    wrong = client.post("/api/login", json={"username": "alice", "password": "nope", "action": "login"})
    assert wrong.status_code == 401

    duplicate = client.post("/api/login", json={"username": "alice", "password": "x", "action": "signup"})
    assert duplicate.status_code == 409

    bad_action = client.post("/api/login", json={"username": "alice", "password": "x", "action": "logout"})
    assert bad_action.status_code == 422


def test_user_reviews_requires_user_id(client) -> None:  # type: ignore[no-untyped-def]
    assert client.get("/api/user-reviews").status_code == 422
    assert client.get("/api/user-reviews", params={"userId": "abc"}).status_code == 422


def test_user_reviews_reports_unreachable_database(client) -> None:  # type: ignore[no-untyped-def]
    api_module.app.dependency_overrides[api_module.get_optional_store] = lambda: UnreachableStore()

    response = client.get("/api/user-reviews", params={"userId": 1})

    assert response.status_code == 503
    assert response.json() == {"detail": "Database connection failed"}


def test_anonymous_analysis_works_without_store(client) -> None:  # type: ignore[no-untyped-def]
    api_module.app.dependency_overrides[api_module.get_optional_store] = lambda: None

    anonymous = client.post("/api/analyze-sentiment", json={"reviewText": "great"})
    assert anonymous.status_code == 200
    assert anonymous.json()["data"]["sentiment"] == "positive"

    with_user = client.post("/api/analyze-sentiment", json={"reviewText": "great", "userId": 3})
    assert with_user.status_code == 200
    assert with_user.json()["data"] == anonymous.json()["data"]

    assert client.get("/api/user-reviews", params={"userId": 3}).status_code == 503
    login = client.post("/api/login", json={"username": "alice", "password": "secret", "action": "signup"})
    assert login.status_code == 503


def test_hosted_route_without_key_is_unavailable(client) -> None:  # type: ignore[no-untyped-def]
    response = client.post("/api/analyze-sentiment/llm", json={"reviewText": "great"})

    assert response.status_code == 503


def test_hosted_route_returns_verdict(client, store) -> None:  # type: ignore[no-untyped-def]
    user = store.create_user("alice", "secret")
    verdict = HostedVerdict(rating=5, explanation="Loved it", sentiment="positive")
    api_module.app.dependency_overrides[api_module.get_hosted] = lambda: FakeHosted(verdict=verdict)

    response = client.post("/api/analyze-sentiment/llm", json={"reviewText": "great", "userId": user.user_id})

    assert response.status_code == 200
    assert response.json()["data"] == {"rating": 5, "explanation": "Loved it", "sentiment": "positive"}
    saved = store.get_user_reviews(user.user_id)
    assert saved[0].rating == 5
    assert saved[0].sentiment == "Positive"


def test_hosted_route_maps_failures_to_bad_gateway(client) -> None:  # type: ignore[no-untyped-def]
    api_module.app.dependency_overrides[api_module.get_hosted] = lambda: FakeHosted(error=HostedModelError("boom"))

    response = client.post("/api/analyze-sentiment/llm", json={"reviewText": "great"})

    assert response.status_code == 502


def test_rate_limit_returns_429() -> None:
    api_module.RATE_LIMIT_MAX_REQUESTS = 2
    api_module.RATE_LIMIT_WINDOW_SECONDS = 60.0
    api_module._rate_limit_events.clear()

    asyncio.run(api_module._enforce_rate_limit())
    asyncio.run(api_module._enforce_rate_limit())

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(api_module._enforce_rate_limit())
    assert exc_info.value.status_code == 429

    api_module.RATE_LIMIT_MAX_REQUESTS = 20
    api_module.RATE_LIMIT_WINDOW_SECONDS = 1.0
    api_module._rate_limit_events.clear()


def test_rate_limit_applies_to_post_routes(client, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setattr(api_module, "RATE_LIMIT_MAX_REQUESTS", 1)
    monkeypatch.setattr(api_module, "RATE_LIMIT_WINDOW_SECONDS", 60.0)

    assert client.post("/api/analyze-sentiment", json={"reviewText": "great"}).status_code == 200
    limited = client.post("/api/analyze-sentiment", json={"reviewText": "great"})
    assert limited.status_code == 429
    assert limited.json() == {"detail": "rate limit exceeded"}
    assert client.get("/healthz").status_code == 200


def test_idempotency_cache_reuses_previous_result(monkeypatch, store) -> None:  # type: ignore[no-untyped-def]
    api_module.IDEMPOTENCY_TTL_SECONDS = 300.0
    api_module._idempotency_cache.clear()
    calls = {"count": 0}

    async def fake_run(payload):  # type: ignore[no-untyped-def]
        calls["count"] += 1
        return SentimentResult(
            label="positive",
            positive_words=["great"],
            negative_words=[],
            neutral_words=[],
            positive_count=1,
            negative_count=0,
            neutral_count=0,
            negations_detected=[],
            explanation="mock",
        )

    monkeypatch.setattr(api_module.engine, "run", fake_run)
    payload = SentimentAnalyzerInput(review_text="great feature")

    first = asyncio.run(api_module.analyze_sentiment(payload, store=store, idempotency_key="idem-1"))
    second = asyncio.run(api_module.analyze_sentiment(payload, store=store, idempotency_key="idem-1"))

    assert calls["count"] == 1
    assert first == second

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(
            api_module.analyze_sentiment(
                SentimentAnalyzerInput(review_text="other text"), store=store, idempotency_key="idem-1"
            )
        )
    assert exc_info.value.status_code == 409
