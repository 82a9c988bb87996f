import asyncio
import contextlib
import logging
import socket
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import uvicorn
from starlette.types import ASGIApp

from ...config import HttpsConfig, ListenSpec
from ...exceptions import BindError, ConfigError, FileReadError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
HTTP_DEFAULT_PORT = 80
HTTPS_DEFAULT_PORT = 443
STARTUP_POLL_INTERVAL = 0.01


@dataclass(frozen=True)
class BindAddress:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class TLSMaterial:
    """Resolved paths of TLS files that were verified readable."""
    key_path: Path
    cert_path: Path
    ca_path: Optional[Path] = None


def resolve_bind_address(listen: ListenSpec, default_port: int) -> BindAddress:
    """
    Resolve a listen value into a bind address.

    ``True`` binds every interface on the protocol default port. A string is
    split on its first colon into host and port; an omitted port falls back
    to the protocol default.

    Raises:
        ConfigError: If the listener is disabled or the port is not a number
    """
    if listen is True:
        return BindAddress(DEFAULT_HOST, default_port)
    if not isinstance(listen, str) or not listen:
        raise ConfigError(f"Listener is not enabled: {listen!r}")

    host, _, port = listen.partition(":")
    if not port:
        return BindAddress(host or DEFAULT_HOST, default_port)
    try:
        return BindAddress(host or DEFAULT_HOST, int(port))
    except ValueError as e:
        raise ConfigError(f"Invalid port in listen value {listen!r}") from e


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise FileReadError(path, e.strerror or str(e)) from e


def load_tls_material(config: HttpsConfig, root: Union[str, Path]) -> TLSMaterial:
    """
    Resolve TLS paths against the application root and check they are readable.

    Raises:
        FileReadError: If any configured file is missing or unreadable
    """
    root = Path(root)
    key_path = (root / config.key_path).resolve()
    cert_path = (root / config.cert_path).resolve()
    ca_path = (root / config.ca_path).resolve() if config.ca_path else None

    for path in (key_path, cert_path, ca_path):
        if path is not None:
            _read(path)

    return TLSMaterial(key_path=key_path, cert_path=cert_path, ca_path=ca_path)


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server driven by its owner instead of process signals."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class Listener:
    """A bound socket serving the shared ASGI application."""

    def __init__(
        self,
        name: str,
        app: ASGIApp,
        address: BindAddress,
        tls: Optional[TLSMaterial] = None,
        log_config: Optional[Dict[str, Any]] = None,
        backlog: int = 2048,
    ):
        self.name = name
        self.app = app
        self.address = address
        self.tls = tls
        self.log_config = log_config
        self.backlog = backlog
        self._server: Optional[_EmbeddedServer] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _bind(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.address.host, self.address.port))
        except OSError as e:
            sock.close()
            raise BindError(self.address.host, self.address.port, e.strerror or str(e)) from e

        # Port 0 asks the OS for a free port
        self.address = BindAddress(self.address.host, sock.getsockname()[1])
        return sock

    def _config(self) -> uvicorn.Config:
        options: Dict[str, Any] = {}
        if self.tls:
            options["ssl_keyfile"] = str(self.tls.key_path)
            options["ssl_certfile"] = str(self.tls.cert_path)
            if self.tls.ca_path:
                options["ssl_ca_certs"] = str(self.tls.ca_path)

        config = uvicorn.Config(
            self.app,
            host=self.address.host,
            port=self.address.port,
            lifespan="off",
            access_log=False,
            log_config=self.log_config,
            backlog=self.backlog,
            **options,
        )
        try:
            config.load()
        except ssl.SSLError as e:
            raise FileReadError(self.tls.cert_path, f"invalid TLS material: {e}") from e
        return config

    async def start(self) -> None:
        """
        Bind the socket and wait until the server accepts connections.

        Raises:
            BindError: If the address is unavailable
            FileReadError: If the TLS material cannot be loaded
        """
        config = self._config()
        sock = self._bind()

        self._server = _EmbeddedServer(config)
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]))

        while not self._server.started:
            if self._task.done():
                sock.close()
                self._task.result()
                raise BindError(self.address.host, self.address.port, "server exited during startup")
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

    async def stop(self) -> None:
        """Stop accepting connections and wait for in-flight requests."""
        if self._server is None:
            return
        self._server.should_exit = True
        await self._task
        self._server = None
        self._task = None
