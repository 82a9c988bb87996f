"""Server configuration following Black Box Design principles."""
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Tuple, Union

from ..exceptions import ConfigError

# A listen spec is either a flag or a "host[:port]" string
ListenSpec = Union[bool, str]
OriginPolicy = Union[bool, Tuple[str, ...], Callable[[str], bool]]

DEFAULT_SESSION_KEY = "webstack.sid"
DEFAULT_SESSION_MAX_AGE = 86400


@dataclass(frozen=True)
class CookieConfig:
    """Cookie signing configuration."""
    keys: Tuple[str, ...]

    def __post_init__(self):
        if isinstance(self.keys, list):
            object.__setattr__(self, "keys", tuple(self.keys))
        if not self.keys or not all(isinstance(k, str) and k for k in self.keys):
            raise ConfigError("cookie.keys must be a non-empty list of non-empty strings")


@dataclass(frozen=True)
class CorsConfig:
    """CORS policy configuration."""
    allow_origins: OriginPolicy = True
    allow_methods: Optional[Tuple[str, ...]] = None
    allow_headers: Tuple[str, ...] = ()
    expose_headers: Tuple[str, ...] = ()
    max_age: Optional[int] = None
    allow_credentials: bool = False

    def __post_init__(self):
        origins = self.allow_origins
        if isinstance(origins, list):
            origins = tuple(origins)
            object.__setattr__(self, "allow_origins", origins)
        if origins is False:
            raise ConfigError("cors.allow_origins cannot be false, omit the cors section instead")
        if not (origins is True or isinstance(origins, tuple) or callable(origins)):
            raise ConfigError("cors.allow_origins must be true, a list of origins or a predicate")


@dataclass(frozen=True)
class RedisConfig:
    """Session store connection target."""
    url: str
    db: Optional[int] = None


@dataclass(frozen=True)
class SessionConfig:
    """Session policy configuration."""
    redis: RedisConfig
    key: str = DEFAULT_SESSION_KEY
    max_age: int = DEFAULT_SESSION_MAX_AGE

    def __post_init__(self):
        if not self.key:
            raise ConfigError("session.key must not be empty")
        if self.max_age <= 0:
            raise ConfigError("session.max_age must be positive")


@dataclass(frozen=True)
class HttpConfig:
    """Plain HTTP listener configuration."""
    listen: ListenSpec = False

    def __post_init__(self):
        _check_listen("http", self.listen)


@dataclass(frozen=True)
class HttpsConfig:
    """HTTPS listener configuration."""
    listen: ListenSpec = False
    key_path: Optional[str] = None
    cert_path: Optional[str] = None
    ca_path: Optional[str] = None

    def __post_init__(self):
        _check_listen("https", self.listen)
        if self.listen and not (self.key_path and self.cert_path):
            raise ConfigError("https.key_path and https.cert_path are required when https.listen is set")


@dataclass(frozen=True)
class ServerConfig:
    """Process-wide server configuration, immutable once built."""
    cookie: CookieConfig
    session: SessionConfig
    http: HttpConfig = field(default_factory=HttpConfig)
    https: HttpsConfig = field(default_factory=HttpsConfig)
    cors: Optional[CorsConfig] = None

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "ServerConfig":
        """
        Build a ServerConfig from a nested mapping.

        Keys may be given in snake_case or camelCase (``maxAge``,
        ``allowOrigins``, ``keyPath``...).

        Raises:
            ConfigError: If required sections are missing or values are invalid
        """
        mapping = mapping or {}

        cookie = _section(mapping, "cookie")
        if cookie is None or not _get(cookie, "keys"):
            raise ConfigError("Missing required configuration: cookie.keys")

        session = _section(mapping, "session")
        if session is None:
            raise ConfigError("Missing required configuration: session")
        redis_section = _section(session, "redis")
        if redis_section is None or not _get(redis_section, "url"):
            raise ConfigError("Missing required configuration: session.redis.url")

        http = _section(mapping, "http") or {}
        https = _section(mapping, "https") or {}
        cors = _section(mapping, "cors")

        return cls(
            cookie=CookieConfig(keys=tuple(_get(cookie, "keys"))),
            session=SessionConfig(
                redis=RedisConfig(
                    url=_get(redis_section, "url"),
                    db=_optional_int(_get(redis_section, "db"), "session.redis.db"),
                ),
                key=_get(session, "key", default=DEFAULT_SESSION_KEY),
                max_age=_optional_int(
                    _get(session, "max_age", "maxAge", default=DEFAULT_SESSION_MAX_AGE),
                    "session.max_age",
                ),
            ),
            http=HttpConfig(listen=_get(http, "listen", default=False)),
            https=HttpsConfig(
                listen=_get(https, "listen", default=False),
                key_path=_get(https, "key_path", "keyPath"),
                cert_path=_get(https, "cert_path", "certPath"),
                ca_path=_get(https, "ca_path", "caPath"),
            ),
            cors=_cors_from_mapping(cors) if cors else None,
        )


def _cors_from_mapping(cors: Mapping[str, Any]) -> CorsConfig:
    origins = _get(cors, "allow_origins", "allowOrigins", default=True)
    if isinstance(origins, (list, tuple)):
        origins = tuple(origins)
    elif isinstance(origins, str):
        origins = True if origins == "*" else (origins,)

    methods = _get(cors, "allow_methods", "allowMethods")
    return CorsConfig(
        allow_origins=origins,
        allow_methods=tuple(methods) if methods else None,
        allow_headers=tuple(_get(cors, "allow_headers", "allowHeaders", default=())),
        expose_headers=tuple(_get(cors, "expose_headers", "exposeHeaders", default=())),
        max_age=_optional_int(_get(cors, "max_age", "maxAge"), "cors.max_age"),
        allow_credentials=bool(_get(cors, "allow_credentials", "allowCredentials", default=False)),
    )


def _section(mapping: Mapping[str, Any], name: str) -> Optional[Mapping[str, Any]]:
    value = mapping.get(name)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ConfigError(f"Configuration section '{name}' must be a mapping")
    return value


def _get(mapping: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in mapping and mapping[name] is not None:
            return mapping[name]
    return default


def _optional_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _check_listen(section: str, listen: Any) -> None:
    if isinstance(listen, bool):
        return
    if not isinstance(listen, str) or not listen:
        raise ConfigError(f"{section}.listen must be true, false or a 'host[:port]' string")


def _parse_listen_env(value: Optional[str]) -> ListenSpec:
    if value is None:
        return False
    lowered = value.strip().lower()
    if lowered in ("", "false", "0", "no", "off"):
        return False
    if lowered in ("true", "1", "yes", "on"):
        return True
    return value.strip()


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """
    Load server configuration from environment variables.

    Required:
        WEBSTACK_COOKIE_KEYS: comma separated signing keys, newest first

    Optional:
        WEBSTACK_SESSION_KEY, WEBSTACK_SESSION_MAX_AGE,
        WEBSTACK_REDIS_URL (falls back to REDIS_URL), WEBSTACK_REDIS_DB,
        WEBSTACK_HTTP_LISTEN, WEBSTACK_HTTPS_LISTEN,
        WEBSTACK_HTTPS_KEY_PATH, WEBSTACK_HTTPS_CERT_PATH, WEBSTACK_HTTPS_CA_PATH,
        WEBSTACK_CORS_ORIGINS ("*" or comma separated list; unset disables CORS),
        WEBSTACK_CORS_ALLOW_CREDENTIALS

    Raises:
        ConfigError: If required variables are missing or invalid
    """
    env = os.environ if environ is None else environ

    cookie_keys = env.get("WEBSTACK_COOKIE_KEYS")
    if not cookie_keys:
        raise ConfigError(
            "WEBSTACK_COOKIE_KEYS environment variable is required. "
            "Example: WEBSTACK_COOKIE_KEYS=newest-secret,previous-secret"
        )

    mapping = {
        "cookie": {"keys": [k.strip() for k in cookie_keys.split(",") if k.strip()]},
        "session": {
            "key": env.get("WEBSTACK_SESSION_KEY", DEFAULT_SESSION_KEY),
            "max_age": env.get("WEBSTACK_SESSION_MAX_AGE", str(DEFAULT_SESSION_MAX_AGE)),
            "redis": {
                "url": env.get("WEBSTACK_REDIS_URL") or env.get("REDIS_URL", "redis://localhost:6379/0"),
                "db": env.get("WEBSTACK_REDIS_DB"),
            },
        },
        "http": {"listen": _parse_listen_env(env.get("WEBSTACK_HTTP_LISTEN", "true"))},
        "https": {
            "listen": _parse_listen_env(env.get("WEBSTACK_HTTPS_LISTEN")),
            "key_path": env.get("WEBSTACK_HTTPS_KEY_PATH"),
            "cert_path": env.get("WEBSTACK_HTTPS_CERT_PATH"),
            "ca_path": env.get("WEBSTACK_HTTPS_CA_PATH"),
        },
    }

    cors_origins = env.get("WEBSTACK_CORS_ORIGINS")
    if cors_origins:
        mapping["cors"] = {
            "allow_origins": "*" if cors_origins.strip() == "*" else [
                o.strip() for o in cors_origins.split(",") if o.strip()
            ],
            "allow_credentials": env.get("WEBSTACK_CORS_ALLOW_CREDENTIALS", "false").lower() == "true",
        }

    return ServerConfig.from_mapping(mapping)
