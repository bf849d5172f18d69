"""Opaque bearer tokens stored in Redis with a fixed lifetime."""

import logging
import secrets
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.errors import StoreUnavailableError
from app.files.ids import is_valid_id

log = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
_KEY_PREFIX = "auth_"


class SessionDirectory:
    """Maps token -> user id. No sliding expiry: resolve never extends a session."""

    def __init__(self, client: redis.Redis, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._redis = client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(token: str) -> str:
        return f"{_KEY_PREFIX}{token}"

    async def issue(self, user_id: int) -> str:
        """Create a new session for user_id and return its token."""
        token = secrets.token_urlsafe(32)
        try:
            await self._redis.set(self._key(token), str(user_id), ex=self.ttl_seconds)
        except RedisError as e:
            log.error("Could not store session for user_id=%s: %s", user_id, e)
            raise StoreUnavailableError("Session store unavailable") from e
        log.info("Session issued for user_id=%s ttl=%ds", user_id, self.ttl_seconds)
        return token

    async def resolve(self, token: Optional[str]) -> Optional[int]:
        """Return the user id for token, or None if missing, expired or garbled."""
        if not token:
            return None
        try:
            value = await self._redis.get(self._key(token))
        except RedisError as e:
            log.error("Could not read session: %s", e)
            raise StoreUnavailableError("Session store unavailable") from e
        if value is None:
            return None
        if not is_valid_id(value):
            log.warning("Session value is not a user id: %r", value)
            return None
        return int(value)

    async def revoke(self, token: Optional[str]) -> None:
        """Delete the session; revoking an unknown token is not an error."""
        if not token:
            return
        try:
            await self._redis.delete(self._key(token))
        except RedisError as e:
            log.error("Could not delete session: %s", e)
            raise StoreUnavailableError("Session store unavailable") from e
