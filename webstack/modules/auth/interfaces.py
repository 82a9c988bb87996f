"""Authentication interfaces following Black Box Design principles."""
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from starlette.requests import HTTPConnection


@dataclass
class AuthResult:
    """Standardized authentication result."""
    ok: bool
    user: Any = None
    identity: Optional[str] = None
    error: Optional[str] = None


class Strategy(Protocol):
    """Protocol for authentication strategies - allows swappable implementations."""

    async def authenticate(self, request: HTTPConnection) -> AuthResult:
        """
        Authenticate a request.

        Args:
            request: Incoming connection

        Returns:
            AuthResult with the authenticated user on success
        """
        ...
