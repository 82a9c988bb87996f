"""
Storage Module - Black Box Interface

Purpose: Persist per-user session state
Interface: connect(), get(), set(), destroy(), close()
Hidden: Redis specifics, key layout, serialization

Can be replaced with any store exposing the same coroutines.
"""

import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

from ...exceptions import StoreConnectionError

logger = logging.getLogger(__name__)


class RedisSessionStore:
    """Redis-backed session store."""

    def __init__(self, url: str, db: Optional[int] = None, prefix: str = "session:"):
        """
        Initialize storage with connection target.

        Args:
            url: Redis connection URL
            db: Database number, used when the URL does not select one
            prefix: Key prefix for session entries
        """
        self.url = url
        self.db = db
        self.prefix = prefix
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> Optional[redis.Redis]:
        return self._client

    async def connect(self) -> redis.Redis:
        """
        Open the connection and wait until the store is ready.

        Readiness is a single outcome: the first PING either succeeds or
        fails, and a failure is reported as StoreConnectionError.

        Raises:
            StoreConnectionError: If the store errors before becoming ready
        """
        options: Dict[str, Any] = {"decode_responses": True}
        if self.db is not None:
            options["db"] = self.db

        self._client = redis.from_url(self.url, **options)
        try:
            await self._client.ping()
        except (redis.RedisError, OSError) as e:
            client, self._client = self._client, None
            await client.aclose()
            raise StoreConnectionError(f"Session store at {self.url} failed: {e}") from e

        logger.debug(f"Session store ready at {self.url}")
        return self._client

    def _key(self, sid: str) -> str:
        return f"{self.prefix}{sid}"

    async def get(self, sid: str) -> Optional[dict]:
        """Get session data or None if missing or expired."""
        data = await self._client.get(self._key(sid))
        if data:
            return json.loads(data)
        return None

    async def set(self, sid: str, session: dict, ttl: int) -> None:
        """Store session data with a TTL in seconds."""
        await self._client.setex(self._key(sid), ttl, json.dumps(session))

    async def destroy(self, sid: str) -> None:
        """Delete session data."""
        await self._client.delete(self._key(sid))

    async def close(self) -> None:
        """Close storage connection."""
        if self._client:
            await self._client.aclose()
            self._client = None


__all__ = ["RedisSessionStore"]
