"""Access logging for every request passing through the pipeline."""

import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ...logging_config import ACCESS_LOGGER


class AccessLogMiddleware:
    """Log request arrival and completion with status and duration."""

    def __init__(self, app: ASGIApp, logger_name: str = ACCESS_LOGGER):
        self.app = app
        self.logger = logging.getLogger(logger_name)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        path = scope["path"]
        if scope.get("query_string"):
            path = f"{path}?{scope['query_string'].decode('latin-1')}"

        status = None
        started = time.perf_counter()
        self.logger.debug(f"<-- {method} {path}")

        async def send_wrapper(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            elapsed = (time.perf_counter() - started) * 1000
            self.logger.debug(f"xxx {method} {path} 500 {elapsed:.0f}ms")
            raise

        elapsed = (time.perf_counter() - started) * 1000
        self.logger.debug(f"--> {method} {path} {status} {elapsed:.0f}ms")
