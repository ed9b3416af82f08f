from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import uvicorn

from .auth import AuthError, authenticate
from .engine import SentimentAnalyzerEngine
from .hosted import HostedModelClassifier, HostedModelError
from .lexicon import load_lexicon
from .models import (
    AnalysisData,
    AnalysisResponse,
    HostedAnalysisResponse,
    LoginInput,
    LoginResponse,
    SentimentAnalyzerInput,
    UserReviewsResponse,
)
from .storage import ReviewStore, to_stored_sentiment

logger = logging.getLogger("review_sentiment_v1.api")


def load_env_file(path: str) -> None:
    if not os.path.exists(path):
        return
    with open(path, "r", encoding="utf-8") as env_file:
        for raw_line in env_file:
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            os.environ.setdefault(key, value)


load_env_file(os.getenv("ENV_FILE", ".env"))

SERVICE_HOST = os.getenv("SERVICE_HOST", "0.0.0.0")
SERVICE_PORT = int(os.getenv("SERVICE_PORT", "8080"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./reviews.db")
LEXICON_PATH = (os.getenv("LEXICON_PATH") or "").strip()
GEMINI_API_KEY = (os.getenv("GEMINI_API_KEY") or "").strip()
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "20"))
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "1"))
IDEMPOTENCY_TTL_SECONDS = float(os.getenv("IDEMPOTENCY_TTL_SECONDS", "300"))

engine = SentimentAnalyzerEngine(load_lexicon(LEXICON_PATH))

_rate_limit_events: deque[float] = deque()
_rate_limit_lock = asyncio.Lock()
_idempotency_cache: dict[str, tuple[float, str, dict[str, Any]]] = {}
_idempotency_lock = asyncio.Lock()
_store_lock = asyncio.Lock()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.store = ReviewStore(DATABASE_URL)
    timeout = httpx.Timeout(connect=5.0, read=HTTP_TIMEOUT_SECONDS, write=5.0, pool=5.0)
    client = httpx.AsyncClient(timeout=timeout)
    app.state.hosted = HostedModelClassifier(GEMINI_API_KEY, client, model=GEMINI_MODEL) if GEMINI_API_KEY else None
    if app.state.hosted is None:
        logger.info("GEMINI_API_KEY is not configured; hosted model route disabled")
    try:
        yield
    finally:
        await client.aclose()
        app.state.store.close()


app = FastAPI(title="review_sentiment_v1", version="0.1.0", lifespan=lifespan)


def get_optional_store(request: Request) -> Optional[ReviewStore]:
    return getattr(request.app.state, "store", None)


def get_store(store: Optional[ReviewStore] = Depends(get_optional_store)) -> ReviewStore:
    if store is None:
        raise HTTPException(status_code=503, detail="review store is not available")
    return store


def get_hosted(request: Request) -> Optional[HostedModelClassifier]:
    return getattr(request.app.state, "hosted", None)


@app.middleware("http")
async def _run_guard(request: Request, call_next):  # type: ignore[no-untyped-def]
    if request.method.upper() == "POST" and request.url.path.startswith("/api/"):
        try:
            await _enforce_rate_limit()
        except HTTPException as exc:
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return await call_next(request)


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/analyze-sentiment")
async def describe_analyze_sentiment() -> dict[str, Any]:
    return {
        "message": "Movie Review Sentiment Analysis API",
        "version": app.version,
        "endpoint": {
            "POST": {
                "description": "Analyze sentiment of movie review text",
                "usage": "POST { reviewText: string, userId?: number }",
                "returns": "Sentiment result (positive, negative, or neutral)",
            }
        },
    }


@app.post("/api/analyze-sentiment", response_model=AnalysisResponse)
async def analyze_sentiment(
    payload: SentimentAnalyzerInput,
    store: Optional[ReviewStore] = Depends(get_optional_store),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
) -> AnalysisResponse:
    normalized_idempotency_key = _normalize_idempotency_key(idempotency_key)
    payload_fingerprint = _sha256_json(payload.model_dump(mode="json"))

    if normalized_idempotency_key:
        cached = await _get_cached_output(normalized_idempotency_key, payload_fingerprint)
        if cached is not None:
            return AnalysisResponse.model_validate(cached)

    result = await engine.run(payload)
    response = AnalysisResponse(
        data=AnalysisData(review_text=payload.review_text, sentiment=result.label, **result.model_dump()),
    )

    if payload.user_id is not None:
        await _persist_review(store, payload.review_text, result.label, payload.user_id)

    if normalized_idempotency_key:
        await _store_cached_output(
            normalized_idempotency_key,
            payload_fingerprint,
            response.model_dump(mode="json", by_alias=True),
        )

    return response


@app.post("/api/analyze-sentiment/llm", response_model=HostedAnalysisResponse)
async def analyze_sentiment_hosted(
    payload: SentimentAnalyzerInput,
    store: Optional[ReviewStore] = Depends(get_optional_store),
    hosted: Optional[HostedModelClassifier] = Depends(get_hosted),
) -> HostedAnalysisResponse:
    if hosted is None:
        raise HTTPException(status_code=503, detail="GEMINI_API_KEY is not configured")

    try:
        verdict = await hosted.classify(payload.review_text)
    except HostedModelError as exc:
        logger.error("hosted sentiment analysis failed: %s", exc)
        raise HTTPException(status_code=502, detail=f"Sentiment analysis failed: {exc}") from exc

    if payload.user_id is not None:
        await _persist_review(store, payload.review_text, verdict.sentiment, payload.user_id, verdict.rating)

    return HostedAnalysisResponse(data=verdict)


@app.post("/api/login", response_model=LoginResponse)
async def login(payload: LoginInput, store: ReviewStore = Depends(get_store)) -> LoginResponse:
    try:
        async with _store_lock:
            user = await asyncio.to_thread(
                authenticate, store, payload.username, payload.password, payload.action
            )
    except AuthError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.reason) from exc
    except SQLAlchemyError as exc:
        logger.exception("login failed on database error")
        raise HTTPException(status_code=503, detail="Database connection failed") from exc
    return LoginResponse(data=user)


@app.get("/api/user-reviews", response_model=UserReviewsResponse)
async def user_reviews(
    user_id: int = Query(alias="userId", ge=1),
    store: ReviewStore = Depends(get_store),
) -> UserReviewsResponse:
    async with _store_lock:
        if not await asyncio.to_thread(store.ping):
            raise HTTPException(status_code=503, detail="Database connection failed")
        try:
            reviews = await asyncio.to_thread(store.get_user_reviews, user_id)
        except SQLAlchemyError as exc:
            logger.exception("fetching reviews failed for user_id=%s", user_id)
            raise HTTPException(status_code=503, detail="Database connection failed") from exc
    return UserReviewsResponse(data=reviews)


async def _persist_review(
    store: Optional[ReviewStore],
    review_text: str,
    label: str,
    user_id: int,
    rating: Optional[int] = None,
) -> None:
    if store is None:
        logger.warning("review store is not available; review for user_id=%s not saved", user_id)
        return
    try:
        async with _store_lock:
            await asyncio.to_thread(store.create_review, review_text, to_stored_sentiment(label), user_id, rating)
    except Exception:
        logger.exception("saving review failed for user_id=%s", user_id)


async def _enforce_rate_limit() -> None:
    if RATE_LIMIT_MAX_REQUESTS <= 0 or RATE_LIMIT_WINDOW_SECONDS <= 0:
        return

    now = time.monotonic()
    min_allowed = now - RATE_LIMIT_WINDOW_SECONDS

    async with _rate_limit_lock:
        while _rate_limit_events and _rate_limit_events[0] <= min_allowed:
            _rate_limit_events.popleft()

        if len(_rate_limit_events) >= RATE_LIMIT_MAX_REQUESTS:
            raise HTTPException(status_code=429, detail="rate limit exceeded")

        _rate_limit_events.append(now)


def _normalize_idempotency_key(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if len(cleaned) > 256:
        raise HTTPException(status_code=422, detail="idempotency key must be <= 256 characters")
    return cleaned


async def _get_cached_output(idempotency_key: str, payload_fingerprint: str) -> Optional[dict[str, Any]]:
    if IDEMPOTENCY_TTL_SECONDS <= 0:
        return None

    now = time.time()
    async with _idempotency_lock:
        _prune_idempotency_cache(now)
        cached = _idempotency_cache.get(idempotency_key)
        if cached is None:
            return None

        expires_at, cached_fingerprint, output = cached
        if cached_fingerprint != payload_fingerprint:
            raise HTTPException(status_code=409, detail="idempotency key reused with different payload")

        return output


async def _store_cached_output(idempotency_key: str, payload_fingerprint: str, output: dict[str, Any]) -> None:
    if IDEMPOTENCY_TTL_SECONDS <= 0:
        return

    async with _idempotency_lock:
        _prune_idempotency_cache(time.time())
        _idempotency_cache[idempotency_key] = (
            time.time() + IDEMPOTENCY_TTL_SECONDS,
            payload_fingerprint,
            output,
        )


def _prune_idempotency_cache(now: float) -> None:
    expired = [key for key, (expires_at, _, _) in _idempotency_cache.items() if expires_at <= now]
    for key in expired:
        _idempotency_cache.pop(key, None)


def _sha256_json(data: dict[str, Any]) -> str:
    encoded = json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def main() -> None:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    uvicorn.run("review_sentiment_v1.api:app", host=SERVICE_HOST, port=SERVICE_PORT, reload=False)


if __name__ == "__main__":
    main()
