"""Top-level API for configuration-driven object-graph mapping."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

from flexmap.configuration import MappingConfiguration, TypePair
from flexmap.declarative import MapTo, converter_fallback
from flexmap.engine import ObjectMapper
from flexmap.errors import (
    ArgumentError,
    ConfigurationConflictError,
    ConfigurationError,
    ConfigurationStateError,
    FlexmapError,
    InstantiationError,
    MappingError,
    ProviderError,
    TypeMismatchError,
)
from flexmap.types import Finalizer

__version__ = "0.1.0"

T = TypeVar("T")


def map_object(
    source: Any,
    destination_type: type[T],
    config: MappingConfiguration | None = None,
    finalizer: Finalizer | None = None,
    handle_circular: bool = True,
    case_insensitive: bool = False,
) -> T:
    """Map ``source`` onto a new ``destination_type`` instance.

    Parameters
    ----------
    source
        Instance to read from.
    destination_type : type
        Type to construct and populate.
    config : MappingConfiguration | None, optional
        Rules to apply; automatic mode for every pair when omitted.
    finalizer : callable, optional
        Sync or async callable run once with the populated destination.
    handle_circular : bool, default=True
        Break reference cycles instead of recursing.
    case_insensitive : bool, default=False
        Match property names ignoring case.

    Returns
    -------
    object
        Populated destination instance.
    """
    return ObjectMapper(config).map(
        source,
        destination_type,
        finalizer=finalizer,
        handle_circular=handle_circular,
        case_insensitive=case_insensitive,
    )


async def map_object_async(
    source: Any,
    destination_type: type[T],
    config: MappingConfiguration | None = None,
    finalizer: Finalizer | None = None,
    handle_circular: bool = True,
    case_insensitive: bool = False,
) -> T:
    """Asynchronous counterpart of :func:`map_object`."""
    return await ObjectMapper(config).map_async(
        source,
        destination_type,
        finalizer=finalizer,
        handle_circular=handle_circular,
        case_insensitive=case_insensitive,
    )


def map_collection(
    sources: Iterable[Any],
    destination_type: type[T],
    config: MappingConfiguration | None = None,
    finalizer: Finalizer | None = None,
) -> list[T]:
    """Map every non-``None`` element of ``sources``, preserving order.

    Parameters
    ----------
    sources : Iterable
        Source instances; ``None`` entries are skipped.
    destination_type : type
        Type constructed for each element.
    config : MappingConfiguration | None, optional
        Rules to apply.
    finalizer : callable, optional
        Run once per produced element.

    Returns
    -------
    list
        Mapped destinations.
    """
    return ObjectMapper(config).map_collection(sources, destination_type, finalizer=finalizer)


async def map_collection_async(
    sources: Iterable[Any],
    destination_type: type[T],
    config: MappingConfiguration | None = None,
    finalizer: Finalizer | None = None,
) -> list[T]:
    """Asynchronous counterpart of :func:`map_collection`."""
    return await ObjectMapper(config).map_collection_async(
        sources, destination_type, finalizer=finalizer
    )


def create_default_configuration(
    extra_modules: Iterable[str] | None = None,
    fallback_modules: Iterable[str] | None = None,
) -> MappingConfiguration:
    """Build a configuration with the built-in provider via lazy registry import."""
    from flexmap.plugins.registry import create_default_configuration as _impl

    return _impl(extra_modules=extra_modules, fallback_modules=fallback_modules)


__all__ = [
    "ArgumentError",
    "ConfigurationConflictError",
    "ConfigurationError",
    "ConfigurationStateError",
    "FlexmapError",
    "InstantiationError",
    "MapTo",
    "MappingConfiguration",
    "MappingError",
    "ObjectMapper",
    "ProviderError",
    "TypeMismatchError",
    "TypePair",
    "__version__",
    "converter_fallback",
    "create_default_configuration",
    "map_collection",
    "map_collection_async",
    "map_object",
    "map_object_async",
]
