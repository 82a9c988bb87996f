"""
Error taxonomy for the webstack lifecycle manager.

Every failure raised by setup(), start() or stop() derives from
WebStackError so callers can treat a phase failure as a single case.
"""


class WebStackError(Exception):
    """Base class for all webstack errors."""


class ConfigError(WebStackError):
    """A required configuration field is missing or invalid."""


class StoreConnectionError(WebStackError):
    """The session store failed before becoming ready."""


class FileReadError(WebStackError):
    """TLS material could not be read from disk."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class BindError(WebStackError):
    """A listener could not bind the requested host/port."""

    def __init__(self, host: str, port: int, reason: str):
        self.host = host
        self.port = port
        self.reason = reason
        super().__init__(f"Cannot bind {host}:{port}: {reason}")


class LifecycleError(WebStackError):
    """An operation was called in the wrong lifecycle state."""


__all__ = [
    "WebStackError",
    "ConfigError",
    "StoreConnectionError",
    "FileReadError",
    "BindError",
    "LifecycleError",
]
