"""
Config Module - Black Box Interface

Purpose: Server configuration model and loaders
Interface: ServerConfig.from_mapping(), load_config_from_env()
Hidden: Key aliasing, environment parsing, validation

Configuration objects are frozen; nothing changes them after setup().
"""

from .provider import (
    CookieConfig,
    CorsConfig,
    HttpConfig,
    HttpsConfig,
    ListenSpec,
    RedisConfig,
    ServerConfig,
    SessionConfig,
    load_config_from_env,
)

__all__ = [
    "CookieConfig",
    "CorsConfig",
    "HttpConfig",
    "HttpsConfig",
    "ListenSpec",
    "RedisConfig",
    "ServerConfig",
    "SessionConfig",
    "load_config_from_env",
]
