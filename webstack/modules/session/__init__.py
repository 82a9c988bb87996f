"""
Session Module - Black Box Interface

Purpose: Server-side sessions keyed by a signed cookie
Interface: SessionMiddleware, CookieSigner
Hidden: Cookie format, signature scheme, change detection

The session is a plain dict on ``request.session``; an emptied session is
destroyed and its cookie cleared.
"""

from .session import SessionMiddleware
from .signing import CookieSigner

__all__ = ["SessionMiddleware", "CookieSigner"]
