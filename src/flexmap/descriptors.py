"""Type descriptor cache and type classification helpers."""

from __future__ import annotations

import collections.abc
import dataclasses
import inspect
import threading
import types
import typing
from dataclasses import dataclass
from datetime import date, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Union, get_args, get_origin
from uuid import UUID

from pydantic import BaseModel

from flexmap.declarative import MapTo

SIMPLE_TYPES: tuple[type, ...] = (
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    Decimal,
    date,
    time,
    timedelta,
    UUID,
    Enum,
    type(None),
)

_NUMERIC_PROMOTIONS = {(int, float), (int, complex), (float, complex)}
_TEXT_TYPES = (str, bytes, bytearray, memoryview)


@dataclass(frozen=True)
class PropertyDescriptor:
    """Accessible instance property of a type."""

    name: str
    value_type: Any
    readable: bool = True
    writable: bool = True
    map_to: str | None = None


class TypeDescriptorCache:
    """Memoized per-type property lists.

    Entries are computed on first request and never invalidated. Lookups
    take a lock only on a miss, so concurrent readers do not contend.
    """

    def __init__(self) -> None:
        self._properties: dict[type, tuple[PropertyDescriptor, ...]] = {}
        self._by_name: dict[type, dict[str, PropertyDescriptor]] = {}
        self._lock = threading.Lock()

    def properties_of(self, tp: type) -> tuple[PropertyDescriptor, ...]:
        """Return the cached, order-stable property list of ``tp``."""
        cached = self._properties.get(tp)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._properties.get(tp)
            if cached is None:
                cached = _describe(tp)
                self._properties[tp] = cached
                self._by_name[tp] = {item.name: item for item in cached}
        return cached

    def find(
        self,
        tp: type,
        name: str,
        *,
        case_insensitive: bool = False,
    ) -> PropertyDescriptor | None:
        """Look up one property of ``tp`` by name."""
        self.properties_of(tp)
        by_name = self._by_name[tp]
        found = by_name.get(name)
        if found is not None or not case_insensitive:
            return found
        lowered = name.lower()
        return next(
            (item for key, item in by_name.items() if key.lower() == lowered),
            None,
        )

    def is_simple_type(self, tp: Any) -> bool:
        """Classify ``tp`` as a scalar value type."""
        return is_simple_type(tp)

    def __len__(self) -> int:
        return len(self._properties)


def _describe(tp: type) -> tuple[PropertyDescriptor, ...]:
    if not isinstance(tp, type):
        raise TypeError(f"Expected a class, got {tp!r}.")
    if issubclass(tp, BaseModel):
        return _describe_model(tp)

    frozen = _is_frozen_dataclass(tp)
    found: dict[str, PropertyDescriptor] = {}
    for name, annotation in _resolve_hints(tp).items():
        if name.startswith("_") or get_origin(annotation) is ClassVar:
            continue
        value_type, map_to = _split_annotated(annotation)
        found[name] = PropertyDescriptor(
            name=name,
            value_type=value_type,
            writable=not frozen,
            map_to=map_to,
        )

    for klass in reversed(tp.__mro__):
        for name, attr in vars(klass).items():
            if name.startswith("_") or not isinstance(attr, property):
                continue
            returns: Any = Any
            if attr.fget is not None:
                returns = _safe_hints(attr.fget, tp).get("return", Any)
            value_type, map_to = _split_annotated(returns)
            found[name] = PropertyDescriptor(
                name=name,
                value_type=value_type,
                readable=attr.fget is not None,
                writable=attr.fset is not None,
                map_to=map_to,
            )
    return tuple(found.values())


def _describe_model(tp: type[BaseModel]) -> tuple[PropertyDescriptor, ...]:
    frozen = bool(tp.model_config.get("frozen", False))
    found = []
    for name, field in tp.model_fields.items():
        map_to = next(
            (item.destination_property for item in field.metadata if isinstance(item, MapTo)),
            None,
        )
        found.append(
            PropertyDescriptor(
                name=name,
                value_type=field.annotation,
                writable=not (frozen or field.frozen),
                map_to=map_to,
            )
        )
    return tuple(found)


def _resolve_hints(tp: type) -> dict[str, Any]:
    """Collect annotations base-first, resolving forward references."""
    merged: dict[str, Any] = {}
    for klass in reversed(tp.__mro__):
        if klass is object:
            continue
        own = inspect.get_annotations(klass)
        if not own:
            continue
        resolved = _safe_hints(klass, tp)
        for name, raw in own.items():
            merged[name] = resolved.get(name, Any if isinstance(raw, str) else raw)
    return merged


def _safe_hints(obj: Any, owner: type) -> dict[str, Any]:
    localns = {owner.__name__: owner}
    try:
        return typing.get_type_hints(obj, localns=localns, include_extras=True)
    except (NameError, TypeError, AttributeError):
        return {}


def _split_annotated(annotation: Any) -> tuple[Any, str | None]:
    if get_origin(annotation) is Annotated:
        base, *extras = get_args(annotation)
        map_to = next(
            (item.destination_property for item in extras if isinstance(item, MapTo)),
            None,
        )
        return base, map_to
    return annotation, None


def _is_frozen_dataclass(tp: type) -> bool:
    if not dataclasses.is_dataclass(tp):
        return False
    params = getattr(tp, "__dataclass_params__", None)
    return bool(params is not None and params.frozen)


def _is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union or origin is types.UnionType


def unwrap_optional(tp: Any) -> Any:
    """Strip ``None`` from ``X | None``; other unions are returned unchanged."""
    if not _is_union(tp):
        return tp
    members = [arg for arg in get_args(tp) if arg is not type(None)]
    if len(members) == 1:
        return members[0]
    return tp


def is_any(tp: Any) -> bool:
    return tp is Any or tp is object


def is_simple_type(tp: Any) -> bool:
    """Return ``True`` for numeric, boolean, text, temporal, identifier and enum types."""
    tp = unwrap_optional(tp)
    if get_origin(tp) is Literal:
        return True
    if _is_union(tp):
        return all(is_simple_type(arg) for arg in get_args(tp))
    return isinstance(tp, type) and issubclass(tp, SIMPLE_TYPES)


def _origin_class(tp: Any) -> Any:
    return get_origin(tp) or tp


def is_ordered_collection(tp: Any) -> bool:
    """Return ``True`` for list-, tuple- and sequence-shaped types other than text."""
    origin = _origin_class(unwrap_optional(tp))
    if not isinstance(origin, type) or issubclass(origin, _TEXT_TYPES):
        return False
    if origin in (collections.abc.Iterable, collections.abc.Collection):
        return True
    return issubclass(origin, collections.abc.Sequence)


def is_mapping_type(tp: Any) -> bool:
    origin = _origin_class(unwrap_optional(tp))
    return isinstance(origin, type) and issubclass(origin, collections.abc.Mapping)


def is_set_type(tp: Any) -> bool:
    """Return ``True`` for ``set``, ``frozenset`` and abstract set types."""
    origin = _origin_class(unwrap_optional(tp))
    return isinstance(origin, type) and issubclass(origin, collections.abc.Set)


def collection_factory(tp: Any) -> type:
    """Concrete container built for a collection destination of type ``tp``."""
    origin = _origin_class(unwrap_optional(tp))
    if isinstance(origin, type):
        if issubclass(origin, tuple):
            return tuple
        if issubclass(origin, frozenset):
            return frozenset
        if issubclass(origin, collections.abc.Set):
            return set
    return list


def is_array_shaped(tp: Any) -> bool:
    """Fixed-size sequences are represented by ``tuple``."""
    origin = _origin_class(unwrap_optional(tp))
    return isinstance(origin, type) and issubclass(origin, tuple)


def element_type_of(tp: Any) -> Any:
    """Element type of a sequence annotation, ``Any`` when undeclared."""
    tp = unwrap_optional(tp)
    args = get_args(tp)
    if not args:
        return Any
    if is_array_shaped(tp):
        if len(args) == 2 and args[1] is Ellipsis:
            return args[0]
        return args[0] if len(set(args)) == 1 else Any
    return args[0]


def mapping_value_type(tp: Any) -> Any:
    """Value type of a mapping annotation, ``Any`` when undeclared."""
    args = get_args(unwrap_optional(tp))
    return args[1] if len(args) == 2 else Any


def is_assignable(source: Any, destination: Any) -> bool:
    """Check whether values of ``source`` type fit a ``destination`` property."""
    if is_any(destination) or is_any(source):
        return True
    if source is type(None):
        return destination is type(None) or (
            _is_union(destination) and type(None) in get_args(destination)
        )
    source = unwrap_optional(source)
    if _is_union(source):
        return all(is_assignable(arg, destination) for arg in get_args(source))
    if _is_union(destination):
        return any(is_assignable(source, arg) for arg in get_args(destination))

    if get_origin(destination) is Literal:
        if get_origin(source) is not Literal:
            return False
        return set(get_args(source)) <= set(get_args(destination))
    if get_origin(source) is Literal:
        return all(is_assignable(type(item), destination) for item in get_args(source))

    src_origin = _origin_class(source)
    dst_origin = _origin_class(destination)
    if not isinstance(src_origin, type) or not isinstance(dst_origin, type):
        return source == destination
    if not issubclass(src_origin, dst_origin):
        return (src_origin, dst_origin) in _NUMERIC_PROMOTIONS

    src_args, dst_args = get_args(source), get_args(destination)
    if not src_args or not dst_args or len(src_args) != len(dst_args):
        return True
    return all(
        a is Ellipsis or b is Ellipsis or is_assignable(a, b)
        for a, b in zip(src_args, dst_args)
    )


def value_fits(value: Any, destination: Any) -> bool:
    """Runtime counterpart of :func:`is_assignable` for a concrete value."""
    return is_assignable(type(value), destination)


descriptor_cache = TypeDescriptorCache()
"""Process-wide descriptor cache; entries live for the process lifetime."""
