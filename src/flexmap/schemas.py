"""Pydantic schemas for runtime validation of configuration inputs."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _require_name(value: str) -> str:
    if not value.strip():
        raise ValueError("property names cannot be empty.")
    return value


class TypePairArgs(BaseModel):
    """Validated input for ``for_types`` and non-fluent registrations."""

    model_config = ConfigDict(extra="forbid")

    source_type: type
    destination_type: type


class PropertyNameArgs(BaseModel):
    """Validated single property name."""

    model_config = ConfigDict(extra="forbid", strict=True)

    name: str

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _require_name(value)


class PropertyMappingArgs(BaseModel):
    """Validated input for ``map_property`` and ``map_property_if``."""

    model_config = ConfigDict(extra="forbid", strict=True)

    source_property: str
    destination_property: str
    priority: int = 0

    @field_validator("source_property", "destination_property")
    @classmethod
    def _validate_names(cls, value: str) -> str:
        return _require_name(value)


class PropertyFunctionArgs(BaseModel):
    """Validated input for converter, predicate and transformer registration."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    property_name: str
    function: Callable[..., Any]
    order: int = Field(default=0, strict=True)

    @field_validator("property_name")
    @classmethod
    def _validate_property_name(cls, value: str) -> str:
        return _require_name(value)


class FallbackArgs(BaseModel):
    """Validated input for explicit fallback converter registration."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    source_value_type: Any
    destination_value_type: Any
    converter: Callable[..., Any]

    @field_validator("source_value_type", "destination_value_type")
    @classmethod
    def _validate_value_type(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("value types cannot be None.")
        return value
