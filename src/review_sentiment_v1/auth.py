from __future__ import annotations

import logging

from .models import AuthenticatedUser
from .storage import DuplicateUserError, ReviewStore

logger = logging.getLogger("review_sentiment_v1.auth")


class AuthError(Exception):
    def __init__(self, reason: str, status_code: int = 400) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


def authenticate(store: ReviewStore, username: str, password: str, action: str) -> AuthenticatedUser:
    username = (username or "").strip()
    password = (password or "").strip()
    if not username:
        raise AuthError("Username is required and must be a non-empty string")
    if not password:
        raise AuthError("Password is required and must be a non-empty string")

    if action == "signup":
        if store.get_user_by_username(username) is not None:
            raise AuthError("Username already exists. Please choose a different username.", status_code=409)
        try:
            user = store.create_user(username, password)
        except DuplicateUserError as exc:
            raise AuthError("Username already exists. Please choose a different username.", status_code=409) from exc
        logger.info("signup succeeded user_id=%s", user.user_id)
        return user

    if action == "login":
        user = store.validate_credentials(username, password)
        if user is None:
            logger.info("login rejected for username=%s", username)
            raise AuthError("Invalid username or password", status_code=401)
        logger.info("login succeeded user_id=%s", user.user_id)
        return user

    raise AuthError('Action must be either "login" or "signup"')
