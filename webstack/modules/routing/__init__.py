"""
Routing Module - Black Box Interface

Purpose: Route registration with declarative input validation
Interface: RouteTable.add(), Validated, schema vocabulary
Hidden: Input extraction, error formatting, result encoding
"""

from . import schema
from .router import RouteTable, Validated, ValidatedEndpoint, to_route_path

__all__ = ["RouteTable", "Validated", "ValidatedEndpoint", "schema", "to_route_path"]
