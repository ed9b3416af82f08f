from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_REVIEW_LENGTH = 20_000

SentimentLabel = Literal["positive", "negative", "neutral"]
StoredSentiment = Literal["Positive", "Negative", "Neutral"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class SentimentResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, alias_generator=to_camel, populate_by_name=True)

    label: SentimentLabel
    positive_words: List[str]
    negative_words: List[str]
    neutral_words: List[str]
    positive_count: int = Field(ge=0)
    negative_count: int = Field(ge=0)
    neutral_count: int = Field(ge=0)
    negations_detected: List[str]
    phrases_matched: List[str] = Field(default_factory=list)
    positive_score: float = Field(default=0.0, ge=0.0)
    negative_score: float = Field(default=0.0, ge=0.0)
    neutral_score: float = Field(default=0.0, ge=0.0)
    explanation: str


class SentimentAnalyzerInput(_CamelModel):
    review_text: str
    user_id: Optional[int] = Field(default=None, ge=1)

    @field_validator("review_text")
    @classmethod
    def _validate_review_text(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("reviewText is required and must be a non-empty string")
        if len(cleaned) > MAX_REVIEW_LENGTH:
            raise ValueError(f"reviewText must be <= {MAX_REVIEW_LENGTH} characters")
        return value


class AnalysisData(SentimentResult):
    review_text: str
    sentiment: SentimentLabel


class AnalysisResponse(_CamelModel):
    success: bool = True
    data: AnalysisData


class HostedVerdict(_CamelModel):
    rating: int = Field(ge=1, le=5)
    explanation: str
    sentiment: SentimentLabel


class HostedAnalysisResponse(_CamelModel):
    success: bool = True
    data: HostedVerdict


class LoginInput(_CamelModel):
    username: str
    password: str
    action: Literal["login", "signup"]

    @field_validator("username", "password")
    @classmethod
    def _validate_credential(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("must be a non-empty string")
        if len(cleaned) > 256:
            raise ValueError("must be <= 256 characters")
        return cleaned


class AuthenticatedUser(_CamelModel):
    user_id: int
    username: str


class LoginResponse(_CamelModel):
    success: bool = True
    data: AuthenticatedUser


class StoredReview(_CamelModel):
    review_id: int
    user_id: int
    review_text: str
    sentiment: StoredSentiment
    rating: Optional[int] = None
    timestamp: datetime


class UserReviewsResponse(_CamelModel):
    success: bool = True
    data: List[StoredReview]
