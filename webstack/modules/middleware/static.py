"""Static folder mounts that fall through when a file is missing."""

import logging

from starlette.exceptions import HTTPException
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


class StaticFolderMiddleware:
    """
    Serve files from a directory under a URL prefix.

    Only GET and HEAD requests under the prefix are considered. Anything the
    directory cannot answer is handed to the next stage unchanged, including
    every request when the directory does not exist.
    """

    def __init__(self, app: ASGIApp, prefix: str, directory: str, **options):
        self.app = app
        self.prefix = prefix.rstrip("/")
        options.setdefault("check_dir", False)
        self.static = StaticFiles(directory=directory, **options)

    def _matches(self, path: str) -> bool:
        if not self.prefix:
            return True
        return path == self.prefix or path.startswith(self.prefix + "/")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] != "http"
            or scope["method"] not in ("GET", "HEAD")
            or not self._matches(scope["path"])
        ):
            await self.app(scope, receive, send)
            return

        child_scope = dict(scope)
        child_scope["root_path"] = scope.get("root_path", "") + self.prefix

        try:
            path = self.static.get_path(child_scope)
            response = await self.static.get_response(path, child_scope)
        except HTTPException as e:
            if e.status_code != 404:
                raise
            await self.app(scope, receive, send)
            return

        if response.status_code == 404:
            # html mode answers with a 404 page instead of raising
            await self.app(scope, receive, send)
            return

        await response(child_scope, receive, send)
