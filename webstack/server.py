"""
webstack - Server Lifecycle Manager

This is the thin orchestration layer that:
1. Translates configuration into middleware options
2. Attaches middleware in a fixed order
3. Starts and stops the HTTP/HTTPS listeners

All request handling is delegated to the modules and to FastAPI/uvicorn.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Type, Union

from fastapi import FastAPI
from pydantic import BaseModel

from .config import ServerConfig
from .exceptions import LifecycleError, StoreConnectionError
from .logging_config import get_logging_config
from .modules.auth import AuthInitializeMiddleware, Authenticator, AuthSessionMiddleware
from .modules.listener import (
    HTTP_DEFAULT_PORT,
    HTTPS_DEFAULT_PORT,
    BindAddress,
    Listener,
    TLSMaterial,
    load_tls_material,
    resolve_bind_address,
)
from .modules.middleware import (
    AccessLogMiddleware,
    Pipeline,
    PolicyCORSMiddleware,
    RewriteMiddleware,
    StaticFolderMiddleware,
)
from .modules.routing import RouteTable, schema
from .modules.session import CookieSigner, SessionMiddleware
from .modules.storage import RedisSessionStore

logger = logging.getLogger(__name__)


class ServerState(str, Enum):
    """Lifecycle state of a WebServer."""

    UNINITIALIZED = "uninitialized"
    CONFIGURED = "configured"
    RUNNING = "running"
    STOPPED = "stopped"


class WebServer:
    """
    One web server per process: setup(), start(), then stop().

    Registration methods (middleware, folder, route, rewrite) only append
    to the pipeline and may be called any number of times before start().
    Route dispatch is always the last stage, no matter when routes were
    registered.
    """

    # Schema validation vocabulary for route definitions
    Schema = schema

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        log_level: str = "info",
        configure_logging: bool = True,
    ):
        """
        Args:
            root: Application root that TLS paths are resolved against
                (defaults to the current working directory)
            log_level: Level for webstack loggers when configuring logging
            configure_logging: Let the listeners apply the webstack logging
                configuration; disable to keep the host application's own
        """
        self.root = Path(root) if root is not None else Path.cwd()
        self.log_config = get_logging_config(log_level) if configure_logging else None

        self.auth = Authenticator()
        self.pipeline = Pipeline()
        self.routes = RouteTable()

        self.state = ServerState.UNINITIALIZED
        self.config: Optional[ServerConfig] = None
        self.signer: Optional[CookieSigner] = None
        self.app: Optional[FastAPI] = None
        self.session_store: Optional[RedisSessionStore] = None
        self.http_listener: Optional[Listener] = None
        self.https_listener: Optional[Listener] = None

    # Registration API

    def _check_registration(self, what: str) -> None:
        if self.pipeline.sealed:
            raise LifecycleError(f"Cannot register {what} after start()")

    def middleware(self, middleware: Union[type, Callable], **options) -> None:
        """
        Register middleware.

        Args:
            middleware: ASGI middleware class (instantiated with the next app
                and ``options``) or an ``async (request, call_next)`` function
        """
        self._check_registration("middleware")
        name = getattr(middleware, "__name__", type(middleware).__name__)
        logger.info(f"Registering Middleware: {name}")
        self.pipeline.add(name, middleware, **options)

    def folder(self, path: str, directory: Union[str, Path], **options) -> None:
        """Serve a directory under a URL prefix (StaticFiles options accepted)."""
        self._check_registration("static path")
        logger.info(f"Registering Static Path: {path} -> {directory}")
        if not Path(directory).is_dir():
            logger.warning(f"Static folder {directory} does not exist, requests under {path} fall through")
        self.pipeline.add(
            f"static:{path}",
            StaticFolderMiddleware,
            prefix=path,
            directory=str(directory),
            **options,
        )

    def route(
        self,
        method: Union[str, List[str]],
        path: str,
        validate: Optional[Mapping[str, Type[BaseModel]]],
        handler: Callable,
    ) -> None:
        """
        Register a route handler.

        Args:
            method: HTTP method or list of methods
            path: Route path, ``/items/{id}`` or ``/items/:id``
            validate: Optional mapping of params/query/headers/body to models
            handler: Called with the request; validated input is on
                ``request.state.validated``
        """
        self._check_registration("route")
        logger.info(f"Registering Route Handler: {method} {path}")
        self.routes.add(method, path, validate, handler)

    def rewrite(self, source: Any, destination: str) -> None:
        """Rewrite request paths matching ``source`` to ``destination``."""
        self._check_registration("rewrite")
        logger.info(f"Registering URL Rewrite: {source} -> {destination}")
        self.pipeline.add(
            f"rewrite:{source}",
            RewriteMiddleware,
            source=source,
            destination=destination,
        )

    # Lifecycle

    async def setup(self, config: Union[ServerConfig, Mapping[str, Any]]) -> None:
        """
        Set up the server so that it is ready to start.

        Raises:
            ConfigError: If required configuration is missing or invalid
            StoreConnectionError: If the session store fails before it is ready
            LifecycleError: If called more than once
        """
        if self.state is not ServerState.UNINITIALIZED:
            raise LifecycleError(f"setup() called in state {self.state.value}")

        if not isinstance(config, ServerConfig):
            config = ServerConfig.from_mapping(config)

        logger.info("Setting up session store")
        store = RedisSessionStore(config.session.redis.url, db=config.session.redis.db)
        try:
            await store.connect()
        except StoreConnectionError as e:
            logger.error(f"Session store setup failed: {e}")
            raise

        self.config = config
        self.signer = CookieSigner(config.cookie.keys)
        self.session_store = store

        self.pipeline.add_builtin("access_log", AccessLogMiddleware)

        if config.cors is not None:
            self.pipeline.add_builtin("cors", PolicyCORSMiddleware, policy=config.cors)

        self.pipeline.add_builtin(
            "session",
            SessionMiddleware,
            store=store,
            signer=self.signer,
            key=config.session.key,
            max_age=config.session.max_age,
            rolling=True,
            http_only=False,
        )

        self.pipeline.add_builtin("auth_initialize", AuthInitializeMiddleware, authenticator=self.auth)
        self.pipeline.add_builtin("auth_session", AuthSessionMiddleware, authenticator=self.auth)

        self.state = ServerState.CONFIGURED
        logger.info("Web server configured")

    def _build_app(self) -> FastAPI:
        return FastAPI(
            routes=list(self.routes.routes),
            middleware=self.pipeline.middleware(),
            openapi_url=None,
            docs_url=None,
            redoc_url=None,
        )

    async def _listen(
        self, name: str, address: BindAddress, tls: Optional[TLSMaterial] = None
    ) -> Listener:
        listener = Listener(name, self.app, address, tls=tls, log_config=self.log_config)
        await listener.start()
        return listener

    async def start(self) -> None:
        """
        Start the listeners and begin accepting connections.

        HTTP is fully bound before HTTPS is attempted. A failure leaves any
        listener that already started running; call stop() to clean up.

        Raises:
            LifecycleError: If setup() has not completed
            BindError: If a listener cannot bind its address
            FileReadError: If TLS material is missing or unreadable
        """
        if self.state is not ServerState.CONFIGURED:
            raise LifecycleError(f"start() requires a configured server, state is {self.state.value}")

        # Make sure route dispatch is the last stage
        self.pipeline.seal()
        self.app = self._build_app()
        # Middleware is constructed here, not on the first request
        self.app.middleware_stack = self.app.build_middleware_stack()

        if self.config.http.listen:
            address = resolve_bind_address(self.config.http.listen, HTTP_DEFAULT_PORT)
            self.http_listener = await self._listen("http", address)
            logger.info(f"HTTP listening on: {self.http_listener.address}")

        if self.config.https.listen:
            address = resolve_bind_address(self.config.https.listen, HTTPS_DEFAULT_PORT)
            tls = load_tls_material(self.config.https, self.root)
            self.https_listener = await self._listen("https", address, tls=tls)
            logger.info(f"HTTPS listening on: {self.https_listener.address}")

        self.state = ServerState.RUNNING

    async def stop(self) -> None:
        """
        Stop the session store and listeners, in that order.

        Resources that were never created are skipped.
        """
        if self.session_store:
            await self.session_store.close()
            self.session_store = None
            logger.info("Session store stopped")

        if self.http_listener:
            await self.http_listener.stop()
            self.http_listener = None
            logger.info("HTTP server stopped")

        if self.https_listener:
            await self.https_listener.stop()
            self.https_listener = None
            logger.info("HTTPS server stopped")

        self.state = ServerState.STOPPED
