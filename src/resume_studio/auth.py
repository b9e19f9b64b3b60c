"""Bearer credential resolution."""

from __future__ import annotations

import logging

from resume_studio.errors import AuthError
from resume_studio.store.profile_store import ProfileStore, hash_token

logger = logging.getLogger(__name__)


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class TokenAuthenticator:
    """Resolves an ``Authorization`` header to a stable user id."""

    def __init__(self, store: ProfileStore):
        self.store = store

    def resolve(self, authorization: str | None) -> str:
        token = bearer_token(authorization)
        if token is None:
            raise AuthError("Missing bearer token")
        user_id = self.store.user_for_token(token)
        if user_id is None:
            logger.info("Rejected unknown token %s", hash_token(token)[:8])
            raise AuthError("Unknown bearer token")
        return user_id
