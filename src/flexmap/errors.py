"""Exception hierarchy for configuration and mapping failures."""

from __future__ import annotations


class FlexmapError(Exception):
    """Base class for all library errors."""

    exit_code = 1


class ArgumentError(FlexmapError, ValueError):
    """Required input is missing or empty."""

    exit_code = 2


class ConfigurationStateError(FlexmapError, RuntimeError):
    """Builder mutator called without an active type pair."""


class ConfigurationError(FlexmapError):
    """Configuration failed explicit validation."""

    exit_code = 3


class ConfigurationConflictError(ConfigurationError):
    """Two property mappings share a destination and the top priority."""

    def __init__(self, message: str, *, destination_property: str, priority: int) -> None:
        super().__init__(message)
        self.destination_property = destination_property
        self.priority = priority


class TypeMismatchError(FlexmapError, TypeError):
    """A value cannot be assigned to its destination property."""


class InstantiationError(FlexmapError):
    """A destination type cannot be default-constructed."""


class MappingError(FlexmapError):
    """A property failed to map; carries the property and type context."""

    def __init__(
        self,
        message: str,
        *,
        property_name: str | None = None,
        source_type: type | None = None,
        destination_type: type | None = None,
    ) -> None:
        super().__init__(message)
        self.property_name = property_name
        self.source_type = source_type
        self.destination_type = destination_type


class ProviderError(FlexmapError):
    """A converter provider could not be loaded or registered."""
