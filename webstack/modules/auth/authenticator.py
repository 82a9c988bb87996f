"""
Authenticator: strategy registry plus the middleware that binds the
logged-in user to each request.
"""

import functools
import inspect
import logging
from typing import Any, Callable, Dict, Optional

from starlette.concurrency import run_in_threadpool
from starlette.requests import HTTPConnection, Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from .interfaces import AuthResult, Strategy

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "auth.user"


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class Authenticator:
    """
    Registry of named authentication strategies.

    The user stored in the session is whatever the serializer returns;
    the deserializer turns it back into a user on later requests. Both
    default to the identity function, so the user must be JSON-able unless
    a serializer is registered.
    """

    def __init__(self):
        self._strategies: Dict[str, Strategy] = {}
        self._serializer: Callable[[Any], Any] = lambda user: user
        self._deserializer: Callable[[Any], Any] = lambda value: value

    @property
    def strategies(self) -> Dict[str, Strategy]:
        return dict(self._strategies)

    def use(self, name: str, strategy: Strategy) -> None:
        """Register a strategy under a name."""
        logger.info(f"Registering Authentication Strategy: {name}")
        self._strategies[name] = strategy

    def serialize_user(self, fn: Callable[[Any], Any]) -> Callable[[Any], Any]:
        """Set the user -> session value function. Usable as a decorator."""
        self._serializer = fn
        return fn

    def deserialize_user(self, fn: Callable[[Any], Any]) -> Callable[[Any], Any]:
        """Set the session value -> user function. Usable as a decorator."""
        self._deserializer = fn
        return fn

    async def login(self, request: HTTPConnection, user: Any) -> None:
        """Store the user in the session and on the request."""
        request.session[SESSION_USER_KEY] = await _maybe_await(self._serializer(user))
        request.state.user = user

    def logout(self, request: HTTPConnection) -> None:
        """Forget the logged-in user."""
        request.session.pop(SESSION_USER_KEY, None)
        request.state.user = None

    async def restore(self, request: HTTPConnection) -> Optional[Any]:
        """Deserialize the session user, dropping it if it no longer resolves."""
        if "session" not in request.scope:
            return None

        value = request.session.get(SESSION_USER_KEY)
        if value is None:
            return None

        user = await _maybe_await(self._deserializer(value))
        if user is None:
            request.session.pop(SESSION_USER_KEY, None)
        return user

    async def run(self, name: str, request: HTTPConnection) -> AuthResult:
        """Run the named strategy against a request."""
        try:
            strategy = self._strategies[name]
        except KeyError:
            raise LookupError(f"Unknown authentication strategy: {name}") from None
        return await strategy.authenticate(request)

    def authenticate(self, name: str, session: bool = True):
        """
        Guard a route handler with a strategy.

        Rejected requests get a 401 JSON error; accepted ones have the user
        on ``request.state.user`` and, with ``session=True``, are logged in.
        """
        def decorator(handler: Callable[[Request], Any]):
            @functools.wraps(handler)
            async def wrapper(request: Request):
                result = await self.run(name, request)
                if not result.ok:
                    return JSONResponse(
                        status_code=401,
                        content={"error": f"Authentication failed: {result.error}", "status": 401},
                    )

                if session and "session" in request.scope:
                    await self.login(request, result.user)
                else:
                    request.state.user = result.user
                logger.debug(f"Request authenticated via {name}: {result.identity}")
                if inspect.iscoroutinefunction(handler):
                    return await handler(request)
                return await _maybe_await(await run_in_threadpool(handler, request))

            return wrapper

        return decorator


class AuthInitializeMiddleware:
    """Expose the authenticator on the request scope."""

    def __init__(self, app: ASGIApp, authenticator: Authenticator):
        self.app = app
        self.authenticator = authenticator

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] in ("http", "websocket"):
            scope["auth"] = self.authenticator
            HTTPConnection(scope).state.user = None
        await self.app(scope, receive, send)


class AuthSessionMiddleware:
    """Bind the user stored in the session to ``request.state.user``."""

    def __init__(self, app: ASGIApp, authenticator: Authenticator):
        self.app = app
        self.authenticator = authenticator

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] in ("http", "websocket"):
            connection = HTTPConnection(scope)
            user = await self.authenticator.restore(connection)
            if user is not None:
                connection.state.user = user
        await self.app(scope, receive, send)
