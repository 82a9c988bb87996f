"""
Middleware Module - Black Box Interface

Purpose: Request-processing units composed into the server pipeline
Interface: Pipeline, PipelineEntry and the middleware classes below
Hidden: ASGI message handling, header manipulation

Every class here is a plain ASGI middleware taking the next app as its
first argument, so any of them can be reused in another Starlette app.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Union

from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware

from .access_log import AccessLogMiddleware
from .cors import PolicyCORSMiddleware, resolve_allowed_origin
from .rewrite import RewriteMiddleware, compile_rule
from .static import StaticFolderMiddleware


@dataclass(frozen=True)
class PipelineEntry:
    """A named stage in the request pipeline."""
    name: str
    middleware: Optional[Middleware]


class Pipeline:
    """
    Ordered request pipeline.

    Built-in stages (access log, CORS, session, authentication) always run
    before application stages, whichever were registered first. Application
    stages run in registration order. Route dispatch has no middleware and
    is appended by seal(); after that the pipeline accepts nothing more.
    """

    DISPATCH = "dispatch"

    def __init__(self):
        self._builtin: List[PipelineEntry] = []
        self._application: List[PipelineEntry] = []
        self._sealed = False

    @property
    def entries(self) -> List[PipelineEntry]:
        entries = self._builtin + self._application
        if self._sealed:
            entries.append(PipelineEntry(self.DISPATCH, None))
        return entries

    def __iter__(self) -> Iterator[PipelineEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]

    @property
    def sealed(self) -> bool:
        return self._sealed

    @staticmethod
    def _entry(name: str, middleware_class: Union[type, Callable], options: dict) -> PipelineEntry:
        # Plain ``async (request, call_next)`` functions run as HTTP middleware
        if not isinstance(middleware_class, type):
            options = {"dispatch": middleware_class, **options}
            middleware_class = BaseHTTPMiddleware
        return PipelineEntry(name, Middleware(middleware_class, **options))

    def _check_open(self) -> None:
        if self._sealed:
            raise RuntimeError("Cannot add middleware after route dispatch")

    def add_builtin(self, name: str, middleware_class: Union[type, Callable], **options) -> None:
        self._check_open()
        self._builtin.append(self._entry(name, middleware_class, options))

    def add(self, name: str, middleware_class: Union[type, Callable], **options) -> None:
        self._check_open()
        self._application.append(self._entry(name, middleware_class, options))

    def seal(self) -> None:
        """Append route dispatch as the terminal stage."""
        self._sealed = True

    def middleware(self) -> List[Middleware]:
        """Middleware in execution order, dispatch excluded."""
        return [entry.middleware for entry in self.entries if entry.middleware is not None]


__all__ = [
    "AccessLogMiddleware",
    "Pipeline",
    "PipelineEntry",
    "PolicyCORSMiddleware",
    "RewriteMiddleware",
    "StaticFolderMiddleware",
    "compile_rule",
    "resolve_allowed_origin",
]
