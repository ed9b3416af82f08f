"""Alternative classifier backed by a hosted Gemini model.

This path is independent of the rule-based engine. It asks the model for a
1-5 rating plus a short explanation and maps the rating onto the same
positive/negative/neutral labels so callers can treat both verdicts alike.
The HTTP client is created by the caller and passed in; nothing here is
initialised lazily.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional

import httpx

from .models import HostedVerdict, SentimentLabel

logger = logging.getLogger("review_sentiment_v1.hosted")

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models"

_JSON_BLOCK_RE = re.compile(r"\{[\s\S]*\}")

PROMPT_TEMPLATE = (
    "Please analyze this movie review and give it a rating from 1-5:\n"
    "- 1 = Very negative/terrible\n"
    "- 2 = Negative/bad\n"
    "- 3 = Neutral/mixed\n"
    "- 4 = Positive/good\n"
    "- 5 = Very positive/excellent\n\n"
    'Review: "{review}"\n\n'
    "Respond in JSON format:\n"
    '{{\n  "rating": number,\n  "explanation": "brief explanation of why you gave this rating"\n}}'
)


class HostedModelError(RuntimeError):
    pass


def rating_to_label(rating: int) -> SentimentLabel:
    if rating <= 2:
        return "negative"
    if rating >= 4:
        return "positive"
    return "neutral"


def parse_verdict(content: str) -> HostedVerdict:
    match = _JSON_BLOCK_RE.search(content or "")
    if not match:
        raise HostedModelError("No valid JSON found in model response")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise HostedModelError("Model response contained malformed JSON") from exc
    if not isinstance(parsed, dict):
        raise HostedModelError("Model response JSON must be an object")

    rating_value = parsed.get("rating")
    if isinstance(rating_value, bool):
        raise HostedModelError("Invalid rating received from model")
    try:
        raw_rating = float(rating_value)
    except (TypeError, ValueError) as exc:
        raise HostedModelError("Invalid rating received from model") from exc
    if not 1 <= raw_rating <= 5:
        raise HostedModelError("Invalid rating received from model")

    rating = int(round(raw_rating))
    explanation = str(parsed.get("explanation") or "").strip() or "No explanation provided"
    return HostedVerdict(rating=rating, explanation=explanation, sentiment=rating_to_label(rating))


class HostedModelClassifier:
    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient,
        model: str = DEFAULT_MODEL,
        endpoint: str = DEFAULT_ENDPOINT,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self._client = client
        self._model = model
        self._endpoint = endpoint.rstrip("/")

    async def classify(self, review_text: str) -> HostedVerdict:
        url = f"{self._endpoint}/{self._model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": PROMPT_TEMPLATE.format(review=review_text)}]}],
            "generationConfig": {"thinkingConfig": {"thinkingBudget": 0}},
        }
        headers = {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            response = await _request_with_retries(
                client=self._client,
                method="POST",
                url=url,
                headers=headers,
                json_payload=payload,
            )
        except RuntimeError as exc:
            raise HostedModelError(str(exc)) from exc

        if response.status_code != 200:
            raise HostedModelError(f"model request failed: status={response.status_code} body={response.text[:500]}")

        try:
            body = response.json()
        except ValueError as exc:
            raise HostedModelError("model response was not JSON") from exc

        content = _extract_text(body)
        if not content:
            raise HostedModelError("No response received from model")

        verdict = parse_verdict(content)
        logger.info("hosted model rated review rating=%s label=%s", verdict.rating, verdict.sentiment)
        return verdict


def _extract_text(body: Any) -> str:
    if not isinstance(body, dict):
        return ""
    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict))


async def _request_with_retries(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    headers: Dict[str, str],
    json_payload: Optional[Dict[str, Any]] = None,
    max_attempts: int = 4,
) -> httpx.Response:
    last_exc: Optional[Exception] = None

    for attempt in range(max_attempts):
        try:
            response = await client.request(method=method, url=url, headers=headers, json=json_payload)
            if response.status_code >= 500 and attempt < max_attempts - 1:
                await asyncio.sleep(0.35 * (2**attempt))
                continue
            return response
        except httpx.HTTPError as exc:
            last_exc = exc
            if attempt >= max_attempts - 1:
                break
            await asyncio.sleep(0.35 * (2**attempt))

    raise RuntimeError(f"request failed after retries: {method} {url}") from last_exc
