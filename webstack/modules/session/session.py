import copy
import logging
import secrets

from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .signing import CookieSigner

logger = logging.getLogger(__name__)


class SessionMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        store,
        signer: CookieSigner,
        key: str,
        max_age: int,
        rolling: bool = True,
        http_only: bool = False,
        https_only: bool = False,
        same_site: str = "lax",
        path: str = "/",
    ):
        """
        Initialize session middleware.

        Args:
            app: Next ASGI application in the pipeline
            store: Session store with get/set/destroy coroutines
            signer: Signer for the session id cookie
            key: Cookie name carrying the session id
            max_age: Session TTL in seconds
            rolling: Refresh TTL and cookie on every response
            http_only: Hide the cookie from client scripts
            https_only: Only send the cookie over TLS
            same_site: SameSite cookie attribute
            path: Cookie path
        """
        self.app = app
        self.store = store
        self.signer = signer
        self.key = key
        self.max_age = max_age
        self.rolling = rolling
        self.path = path

        flags = f"path={path}; samesite={same_site}"
        if http_only:
            flags += "; httponly"
        if https_only:
            flags += "; secure"
        self.flags = flags

    async def _load(self, connection: HTTPConnection) -> tuple:
        cookie = connection.cookies.get(self.key)
        if not cookie:
            return None, {}

        sid = self.signer.unsign(cookie)
        if sid is None:
            logger.debug("Ignoring session cookie with invalid signature")
            return None, {}

        data = await self.store.get(sid)
        if not data:
            # Expired on the store side, start over with a fresh id
            return None, {}
        return sid, data

    def _cookie(self, value: str, max_age: int) -> str:
        header = f"{self.key}={value}; {self.flags}; Max-Age={max_age}"
        if max_age == 0:
            header += "; expires=Thu, 01 Jan 1970 00:00:00 GMT"
        return header

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        sid, data = await self._load(HTTPConnection(scope))
        initial = copy.deepcopy(data)
        scope["session"] = data

        async def send_wrapper(message: Message) -> None:
            nonlocal sid
            if message["type"] == "http.response.start":
                session = scope["session"]
                headers = MutableHeaders(scope=message)
                if session:
                    if sid is None:
                        sid = secrets.token_urlsafe(24)
                    if self.rolling or session != initial:
                        await self.store.set(sid, session, self.max_age)
                        headers.append("Set-Cookie", self._cookie(self.signer.sign(sid), self.max_age))
                elif initial and sid is not None:
                    await self.store.destroy(sid)
                    headers.append("Set-Cookie", self._cookie("null", 0))
            await send(message)

        await self.app(scope, receive, send_wrapper)
