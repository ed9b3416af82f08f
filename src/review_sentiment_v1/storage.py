from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, create_engine, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import AuthenticatedUser, StoredReview, StoredSentiment

logger = logging.getLogger("review_sentiment_v1.storage")

PBKDF2_ITERATIONS = 120_000
MAX_REVIEWS_PER_QUERY = 100


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Review(Base):
    __tablename__ = "reviews"

    review_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), nullable=False, index=True)
    review_text: Mapped[str] = mapped_column(Text, nullable=False)
    sentiment: Mapped[str] = mapped_column(String(16), nullable=False)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DuplicateUserError(ValueError):
    pass


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
        rounds = int(iterations)
        salt_bytes = bytes.fromhex(salt)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt_bytes, rounds)
    return hmac.compare_digest(digest.hex(), expected)


class ReviewStore:
    """Users and analysed reviews, on any SQLAlchemy-supported database."""

    def __init__(self, database_url: str = "sqlite:///./reviews.db") -> None:
        engine_kwargs = {}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
        self._engine = create_engine(database_url, **engine_kwargs)
        self._sessions = sessionmaker(self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)

    def close(self) -> None:
        self._engine.dispose()

    def ping(self) -> bool:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as exc:
            logger.error("database connection failed: %s", exc)
            return False

    def create_user(self, username: str, password: str) -> AuthenticatedUser:
        user = User(
            username=username,
            password_hash=hash_password(password),
            created_at=datetime.now(timezone.utc),
        )
        with self._sessions() as session:
            session.add(user)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateUserError(f"username already exists: {username}") from exc
        logger.info("created user_id=%s", user.user_id)
        return AuthenticatedUser(user_id=user.user_id, username=user.username)

    def get_user_by_username(self, username: str) -> Optional[AuthenticatedUser]:
        with self._sessions() as session:
            user = self._find_user(session, username)
            if user is None:
                return None
            return AuthenticatedUser(user_id=user.user_id, username=user.username)

    def validate_credentials(self, username: str, password: str) -> Optional[AuthenticatedUser]:
        with self._sessions() as session:
            user = self._find_user(session, username)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return AuthenticatedUser(user_id=user.user_id, username=user.username)

    def create_review(
        self,
        review_text: str,
        sentiment: StoredSentiment,
        user_id: int,
        rating: Optional[int] = None,
    ) -> StoredReview:
        review = Review(
            user_id=user_id,
            review_text=review_text,
            sentiment=sentiment,
            rating=rating,
            timestamp=datetime.now(timezone.utc),
        )
        with self._sessions() as session:
            if session.get(User, user_id) is None:
                raise ValueError(f"unknown user_id: {user_id}")
            session.add(review)
            session.commit()
        return _to_stored(review)

    def get_user_reviews(self, user_id: int, limit: int = MAX_REVIEWS_PER_QUERY) -> List[StoredReview]:
        stmt = (
            select(Review)
            .where(Review.user_id == user_id)
            .order_by(Review.timestamp.desc(), Review.review_id.desc())
            .limit(min(limit, MAX_REVIEWS_PER_QUERY))
        )
        with self._sessions() as session:
            return [_to_stored(row) for row in session.scalars(stmt)]

    def get_all_reviews(self, limit: int = MAX_REVIEWS_PER_QUERY) -> List[StoredReview]:
        stmt = (
            select(Review)
            .order_by(Review.timestamp.desc(), Review.review_id.desc())
            .limit(min(limit, MAX_REVIEWS_PER_QUERY))
        )
        with self._sessions() as session:
            return [_to_stored(row) for row in session.scalars(stmt)]

    @staticmethod
    def _find_user(session: Session, username: str) -> Optional[User]:
        return session.scalars(select(User).where(User.username == username)).first()


def _to_stored(review: Review) -> StoredReview:
    return StoredReview(
        review_id=review.review_id,
        user_id=review.user_id,
        review_text=review.review_text,
        sentiment=review.sentiment,
        rating=review.rating,
        timestamp=review.timestamp,
    )


def to_stored_sentiment(label: str) -> StoredSentiment:
    if label == "positive":
        return "Positive"
    if label == "negative":
        return "Negative"
    return "Neutral"
