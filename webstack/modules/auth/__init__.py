"""
Auth Module - Black Box Interface

Purpose: Authentication strategy vocabulary and session binding
Interface: Authenticator, Strategy, AuthResult, ApiKeyStrategy
Hidden: Strategy lookup, user (de)serialization, session layout

Strategies are plain objects with an ``authenticate(request)`` coroutine,
so any credential check can be plugged in.
"""

from .authenticator import (
    SESSION_USER_KEY,
    AuthInitializeMiddleware,
    Authenticator,
    AuthSessionMiddleware,
)
from .interfaces import AuthResult, Strategy
from .strategies import ApiKeyStrategy

__all__ = [
    "SESSION_USER_KEY",
    "ApiKeyStrategy",
    "AuthInitializeMiddleware",
    "AuthResult",
    "AuthSessionMiddleware",
    "Authenticator",
    "Strategy",
]
