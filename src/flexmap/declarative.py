"""Declarative mapping hints: destination-name overrides and fallback converters."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from types import ModuleType
from typing import Any

FALLBACK_MARKER = "__flexmap_converter_fallback__"


@dataclass(frozen=True)
class MapTo:
    """Declare the destination property a source attribute maps to.

    Used as ``Annotated`` metadata on the source type::

        class UserRecord:
            username: Annotated[str, MapTo("login")]
    """

    destination_property: str


def converter_fallback(
    source_type: Any,
    destination_type: Any,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Mark a function as a fallback converter between two value types.

    Parameters
    ----------
    source_type
        Value type the converter accepts.
    destination_type
        Value type the converter produces.

    Returns
    -------
    Callable
        Decorator returning the function unchanged apart from the marker.

    Notes
    -----
    Marking alone registers nothing. Pass the defining module to
    ``MappingConfiguration.scan_converter_fallbacks`` once at startup.
    """
    if source_type is None or destination_type is None:
        raise ValueError("converter_fallback requires both value types.")

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        target = func.__func__ if isinstance(func, staticmethod) else func
        setattr(target, FALLBACK_MARKER, (source_type, destination_type))
        return func

    return decorator


def iter_converter_fallbacks(
    module: ModuleType,
) -> Iterator[tuple[Any, Any, Callable[..., Any]]]:
    """Yield marked fallback converters defined in ``module``.

    Module-level functions and static methods of module-level classes are
    both discovered.
    """
    for _name, obj in vars(module).items():
        if inspect.isclass(obj) and obj.__module__ == module.__name__:
            for attr in vars(obj).values():
                func = attr.__func__ if isinstance(attr, staticmethod) else None
                marker = getattr(func, FALLBACK_MARKER, None)
                if marker is not None:
                    yield marker[0], marker[1], func
            continue
        marker = getattr(obj, FALLBACK_MARKER, None)
        if marker is not None and callable(obj):
            yield marker[0], marker[1], obj
