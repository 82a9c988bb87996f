"""URL rewrite rules applied before routing."""

import logging
import re
from typing import List, Pattern, Tuple, Union

from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)|\*")
_REFERENCE = re.compile(r"\$(\d+)|:([A-Za-z_][A-Za-z0-9_]*)")


def compile_rule(source: Union[str, Pattern]) -> Tuple[Pattern, List[str]]:
    """
    Compile a rewrite source into a regex and its parameter names.

    ``:name`` matches one path segment, ``*`` matches anything. A trailing
    slash is optional. Compiled regexes are used as given.
    """
    if isinstance(source, re.Pattern):
        return source, []

    names: List[str] = []
    parts: List[str] = []
    position = 0
    for match in _TOKEN.finditer(source):
        parts.append(re.escape(source[position:match.start()]))
        if match.group(1):
            names.append(match.group(1))
            parts.append(r"([^/]+?)")
        else:
            names.append(str(len(names)))
            parts.append(r"(.*)")
        position = match.end()
    parts.append(re.escape(source[position:].rstrip("/")))

    return re.compile("^" + "".join(parts) + "/?$"), names


class RewriteMiddleware:
    """Rewrite the request path when it matches the source pattern."""

    def __init__(self, app: ASGIApp, source: Union[str, Pattern], destination: str):
        self.app = app
        self.source = source
        self.destination = destination
        self.pattern, self.names = compile_rule(source)

    def rewrite(self, path: str):
        """Return the rewritten path, or None when the rule does not apply."""
        match = self.pattern.match(path)
        if not match:
            return None

        groups = match.groups()
        params = dict(zip(self.names, groups))

        def substitute(ref):
            if ref.group(1):
                index = int(ref.group(1)) - 1
                if 0 <= index < len(groups):
                    return groups[index] or ""
                return ""
            return params.get(ref.group(2), ref.group(0))

        return _REFERENCE.sub(substitute, self.destination)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] in ("http", "websocket"):
            original = scope["path"]
            rewritten = self.rewrite(original)
            if rewritten is not None:
                path, _, query = rewritten.partition("?")
                logger.debug(f"rewrite {original} -> {rewritten}")
                scope = dict(scope)
                scope["path"] = path
                scope["raw_path"] = path.encode("utf-8")
                if query:
                    scope["query_string"] = query.encode("latin-1")
        await self.app(scope, receive, send)
