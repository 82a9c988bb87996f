"""
Built-in authentication strategies.

Applications register their own strategies with Authenticator.use(); these
cover the common header-credential cases.
"""

import logging
import secrets
from typing import Dict, Iterable, List, Optional, Union

from starlette.requests import HTTPConnection

from .interfaces import AuthResult

logger = logging.getLogger(__name__)


class ApiKeyStrategy:
    """
    Authenticate requests carrying a known API key in a header.

    Keys are given as ``key`` or ``service:key`` entries; the service part
    becomes the authenticated identity.
    """

    @staticmethod
    def parse_api_keys(entries: Union[str, Iterable[str]]) -> Dict[str, Optional[str]]:
        """
        Parse API key entries with optional service identities.

        Example:
            >>> ApiKeyStrategy.parse_api_keys("abc123,orchestrator:def456")
            {'abc123': None, 'def456': 'orchestrator'}
        """
        if isinstance(entries, str):
            entries = entries.split(",")

        keys: Dict[str, Optional[str]] = {}
        for entry in entries:
            entry = entry.strip()
            if not entry:
                continue

            if ":" in entry:
                service, key = entry.split(":", 1)
                keys[key.strip()] = service.strip()
            else:
                keys[entry] = None

        return keys

    def __init__(
        self,
        api_keys: Union[str, Iterable[str]],
        header_names: Optional[List[str]] = None,
    ):
        self.api_keys = self.parse_api_keys(api_keys)
        self.header_names = header_names or ["x-api-key"]

    def extract_api_key(self, request: HTTPConnection) -> Optional[str]:
        """Extract API key from request headers."""
        for header_name in self.header_names:
            api_key = request.headers.get(header_name)
            if api_key:
                return api_key
        return None

    async def authenticate(self, request: HTTPConnection) -> AuthResult:
        api_key = self.extract_api_key(request)
        if not api_key:
            return AuthResult(ok=False, error="API key not provided")

        for known_key, service in self.api_keys.items():
            # Use constant-time comparison for security
            if secrets.compare_digest(api_key, known_key):
                identity = service or "api_key"
                return AuthResult(ok=True, user={"id": identity, "method": "api_key"}, identity=identity)

        logger.warning(f"Invalid API key attempted: {api_key[:8]}...")
        return AuthResult(ok=False, error="Invalid API key")
