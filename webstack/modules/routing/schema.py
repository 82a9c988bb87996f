"""
Schema vocabulary for route validation.

Route validators are pydantic models; this module is the single import
point for defining them.
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

__all__ = [
    "BaseModel",
    "ConfigDict",
    "Field",
    "ValidationError",
    "field_validator",
    "model_validator",
]
