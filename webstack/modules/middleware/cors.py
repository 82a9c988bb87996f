"""
CORS policy translation.

Maps the declarative CorsConfig onto Starlette's CORSMiddleware. The only
decision made here is which allow-origin value a request origin gets.
"""

from typing import Optional

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp

from ...config import CorsConfig

DEFAULT_ALLOW_METHODS = ("GET", "HEAD", "PUT", "POST", "DELETE", "PATCH")
DEFAULT_MAX_AGE = 600
WILDCARD = "*"


def resolve_allowed_origin(origin: Optional[str], policy: CorsConfig) -> Optional[str]:
    """
    Decide the allow-origin value for a request origin.

    A wildcard policy answers ``*``, unless credentials are allowed, in
    which case the request origin is echoed since browsers reject ``*``
    on credentialed requests.

    Returns:
        The allow-origin header value, or None when no CORS header must be set
    """
    if not origin:
        return None

    allowed = policy.allow_origins
    if allowed is True:
        return origin if policy.allow_credentials else WILDCARD
    if callable(allowed):
        return origin if allowed(origin) else None
    return origin if origin in allowed else None


class PolicyCORSMiddleware(CORSMiddleware):
    """
    CORSMiddleware driven by a CorsConfig policy.

    Starlette also echoes the origin for a wildcard policy when the request
    carries a Cookie header; every other response matches
    resolve_allowed_origin().
    """

    def __init__(self, app: ASGIApp, policy: CorsConfig):
        # Credentialed wildcards go through is_allowed_origin so the origin is echoed
        wildcard = policy.allow_origins is True and not policy.allow_credentials
        super().__init__(
            app,
            allow_origins=[WILDCARD] if wildcard else [],
            allow_methods=list(policy.allow_methods or DEFAULT_ALLOW_METHODS),
            allow_headers=list(policy.allow_headers),
            allow_credentials=policy.allow_credentials,
            expose_headers=list(policy.expose_headers),
            max_age=DEFAULT_MAX_AGE if policy.max_age is None else policy.max_age,
        )
        self.policy = policy

    def is_allowed_origin(self, origin: str) -> bool:
        return resolve_allowed_origin(origin, self.policy) is not None
