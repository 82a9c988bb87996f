"""
webstack - Web Server Composition Layer

Wires FastAPI/Starlette, uvicorn and Redis-backed sessions into a single
server object with a setup → start → stop lifecycle.

Architecture:
- Each module is self-contained with clear interfaces
- The lifecycle manager only sequences modules

Modules:
- config: Server configuration model and loaders
- storage: Redis session store
- session: Signed-cookie session middleware
- auth: Authentication strategies and session binding
- middleware: Access log, CORS, static folders, rewrites, pipeline
- routing: Validated routes
- listener: HTTP/HTTPS listeners
"""

from .config import ServerConfig, load_config_from_env
from .exceptions import (
    BindError,
    ConfigError,
    FileReadError,
    LifecycleError,
    StoreConnectionError,
    WebStackError,
)
from .modules.auth import ApiKeyStrategy, AuthResult, Authenticator, Strategy
from .modules.routing import schema as Schema
from .server import ServerState, WebServer

__version__ = "1.0.0"

__all__ = [
    "ApiKeyStrategy",
    "AuthResult",
    "Authenticator",
    "BindError",
    "ConfigError",
    "FileReadError",
    "LifecycleError",
    "Schema",
    "ServerConfig",
    "ServerState",
    "Strategy",
    "StoreConnectionError",
    "WebServer",
    "WebStackError",
    "load_config_from_env",
]
