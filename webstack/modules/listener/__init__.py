"""
Listener Module - Black Box Interface

Purpose: Network listeners serving the request pipeline
Interface: Listener.start(), Listener.stop(), resolve_bind_address(), load_tls_material()
Hidden: Socket binding, uvicorn server management, TLS file handling
"""

from .listener import (
    DEFAULT_HOST,
    HTTP_DEFAULT_PORT,
    HTTPS_DEFAULT_PORT,
    BindAddress,
    Listener,
    TLSMaterial,
    load_tls_material,
    resolve_bind_address,
)

__all__ = [
    "DEFAULT_HOST",
    "HTTP_DEFAULT_PORT",
    "HTTPS_DEFAULT_PORT",
    "BindAddress",
    "Listener",
    "TLSMaterial",
    "load_tls_material",
    "resolve_bind_address",
]
