"""
Shared pytest fixtures for webstack tests.

This module provides common fixtures including:
- In-memory Redis mock backing the session store
- Base server configuration mappings
- WebServer instances with the Redis client patched in
"""

import os
import sys
from typing import Any, Dict
from unittest.mock import AsyncMock, patch

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from webstack import WebServer


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================


@pytest.fixture
def redis_data() -> Dict[str, Any]:
    """Backing dict for the mocked Redis client."""
    return {}


@pytest.fixture
def mock_redis(redis_data):
    """
    AsyncMock Redis client that stores values in ``redis_data``.

    TTLs passed to setex are recorded under ``redis_data["__ttl__"]``.
    """
    redis = AsyncMock()
    ttls = redis_data.setdefault("__ttl__", {})

    async def get(key):
        return redis_data.get(key)

    async def setex(key, ttl, value):
        redis_data[key] = value
        ttls[key] = ttl

    async def delete(*keys):
        for key in keys:
            redis_data.pop(key, None)
            ttls.pop(key, None)

    redis.get = AsyncMock(side_effect=get)
    redis.setex = AsyncMock(side_effect=setex)
    redis.delete = AsyncMock(side_effect=delete)
    redis.ping = AsyncMock(return_value=True)
    redis.aclose = AsyncMock()
    return redis


@pytest.fixture
def patched_redis(mock_redis):
    """Patch redis.from_url used by the session store."""
    with patch("webstack.modules.storage.redis.from_url", return_value=mock_redis) as from_url:
        yield from_url


# =============================================================================
# Server Fixtures
# =============================================================================


@pytest.fixture
def base_config() -> Dict[str, Any]:
    """Minimal valid configuration with no listeners enabled."""
    return {
        "cookie": {"keys": ["test-secret"]},
        "session": {
            "key": "sid",
            "maxAge": 1000,
            "redis": {"url": "redis://localhost/0"},
        },
        "http": {"listen": False},
        "https": {"listen": False},
    }


@pytest.fixture
def server(tmp_path):
    """Fresh WebServer rooted at a temporary directory."""
    return WebServer(root=tmp_path, configure_logging=False)
