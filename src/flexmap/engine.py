"""Recursive object-graph mapping engine."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Coroutine, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from flexmap.application.options import MapOptions
from flexmap.application.ports import TypeIntrospector
from flexmap.configuration import MappingConfiguration, PropertyMapping, TypePair
from flexmap.descriptors import (
    PropertyDescriptor,
    descriptor_cache,
    is_any,
    is_assignable,
    is_mapping_type,
    is_ordered_collection,
    is_set_type,
    is_simple_type,
    mapping_value_type,
    unwrap_optional,
    value_fits,
)
from flexmap.errors import (
    ArgumentError,
    FlexmapError,
    InstantiationError,
    MappingError,
    TypeMismatchError,
)
from flexmap.materializer import materialize_sequence
from flexmap.resolver import IDENTITY, ConversionPipeline, ConversionResolver
from flexmap.types import Finalizer

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING: Any = object()
_SKIP: Any = object()


@dataclass
class _MappingContext:
    """State of one top-level mapping call."""

    config: MappingConfiguration
    resolver: ConversionResolver
    visited: set[int] | None
    case_insensitive: bool


class ObjectMapper:
    """Map source instances onto freshly constructed destination instances.

    Parameters
    ----------
    config : MappingConfiguration | None, default=None
        Configuration used when a call does not pass its own. ``None`` means
        an empty configuration, i.e. automatic mode for every pair.
    introspector : TypeIntrospector | None, default=None
        Property enumeration capability; the process-wide descriptor cache
        by default.

    Notes
    -----
    Destination, nested and element types must be constructible without
    arguments, or have a factory registered on the configuration.
    """

    def __init__(
        self,
        config: MappingConfiguration | None = None,
        *,
        introspector: TypeIntrospector | None = None,
    ) -> None:
        self._config = config if config is not None else MappingConfiguration()
        self._introspector = introspector or descriptor_cache

    @property
    def config(self) -> MappingConfiguration:
        return self._config

    # -----------------------------
    # Entry points
    # -----------------------------
    def map(
        self,
        source: Any,
        destination_type: type[T],
        finalizer: Finalizer | None = None,
        config: MappingConfiguration | None = None,
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
        finalizer : callable, optional
            Sync or async callable run once with the populated destination.
        config : MappingConfiguration | None, optional
            Overrides the mapper's configuration for this call.
        handle_circular : bool, default=True
            Break reference cycles by leaving the re-entered reference ``None``.
        case_insensitive : bool, default=False
            Match property names ignoring case.

        Returns
        -------
        object
            The populated destination instance.

        Raises
        ------
        ArgumentError
            If ``source`` is ``None``.
        InstantiationError
            If ``destination_type`` cannot be constructed.
        MappingError
            If any property fails; no partial result is returned.
        """
        if source is None:
            raise ArgumentError("source cannot be None.")
        options = MapOptions(handle_circular=handle_circular, case_insensitive=case_insensitive)
        return _run_sync(self._map_root(source, destination_type, finalizer, config, options))

    async def map_async(
        self,
        source: Any,
        destination_type: type[T],
        finalizer: Finalizer | None = None,
        config: MappingConfiguration | None = None,
        handle_circular: bool = True,
        case_insensitive: bool = False,
    ) -> T:
        """Asynchronous counterpart of :meth:`map`."""
        if source is None:
            raise ArgumentError("source cannot be None.")
        options = MapOptions(handle_circular=handle_circular, case_insensitive=case_insensitive)
        return await self._map_root(source, destination_type, finalizer, config, options)

    def map_collection(
        self,
        sources: Iterable[Any],
        destination_type: type[T],
        finalizer: Finalizer | None = None,
        config: MappingConfiguration | None = None,
        handle_circular: bool = True,
        case_insensitive: bool = False,
    ) -> list[T]:
        """Map each non-``None`` element of ``sources`` independently, in order."""
        if sources is None:
            raise ArgumentError("sources cannot be None.")
        options = MapOptions(handle_circular=handle_circular, case_insensitive=case_insensitive)
        return _run_sync(self._map_many(sources, destination_type, finalizer, config, options))

    async def map_collection_async(
        self,
        sources: Iterable[Any],
        destination_type: type[T],
        finalizer: Finalizer | None = None,
        config: MappingConfiguration | None = None,
        handle_circular: bool = True,
        case_insensitive: bool = False,
    ) -> list[T]:
        """Asynchronous counterpart of :meth:`map_collection`."""
        if sources is None:
            raise ArgumentError("sources cannot be None.")
        options = MapOptions(handle_circular=handle_circular, case_insensitive=case_insensitive)
        return await self._map_many(sources, destination_type, finalizer, config, options)

    # -----------------------------
    # Top-level orchestration
    # -----------------------------
    async def _map_root(
        self,
        source: Any,
        destination_type: type[T],
        finalizer: Finalizer | None,
        config: MappingConfiguration | None,
        options: MapOptions,
    ) -> T:
        active = config if config is not None else self._config
        context = _MappingContext(
            config=active,
            resolver=ConversionResolver(active),
            visited=set() if options.handle_circular else None,
            case_insensitive=options.case_insensitive,
        )
        destination = _instantiate(destination_type, active)
        await self._map_instance(source, destination, context)
        if finalizer is not None:
            outcome = finalizer(destination)
            if inspect.isawaitable(outcome):
                await outcome
        return destination

    async def _map_many(
        self,
        sources: Iterable[Any],
        destination_type: type[T],
        finalizer: Finalizer | None,
        config: MappingConfiguration | None,
        options: MapOptions,
    ) -> list[T]:
        results: list[T] = []
        for item in sources:
            if item is None:
                continue
            results.append(await self._map_root(item, destination_type, finalizer, config, options))
        return results

    # -----------------------------
    # Per-instance routine
    # -----------------------------
    async def _map_instance(self, source: Any, destination: Any, context: _MappingContext) -> None:
        visited = context.visited
        if visited is not None:
            if id(source) in visited:
                return
            visited.add(id(source))
        try:
            pair = TypePair(type(source), type(destination))
            if context.config.has_rules(pair):
                logger.debug("mapping %s in explicit mode", pair)
                await self._map_explicit(source, destination, pair, context)
            else:
                logger.debug("mapping %s in automatic mode", pair)
                await self._map_automatic(source, destination, pair, context)
        finally:
            if visited is not None:
                visited.discard(id(source))

    async def _map_automatic(
        self,
        source: Any,
        destination: Any,
        pair: TypePair,
        context: _MappingContext,
    ) -> None:
        for prop in self._introspector.properties_of(pair.source):
            if not prop.readable:
                continue
            target = self._introspector.find(
                pair.destination,
                prop.map_to or prop.name,
                case_insensitive=context.case_insensitive,
            )
            if target is None or not target.writable:
                continue
            if is_simple_type(target.value_type) and not is_assignable(
                prop.value_type, target.value_type
            ):
                continue
            try:
                value = _read(source, prop)
                if value is _MISSING:
                    continue
                result = await self._convert_value(
                    value, target.value_type, context, pair=None, strict=False
                )
                if result is not _SKIP:
                    setattr(destination, target.name, result)
            except Exception as exc:
                raise _wrap(exc, prop.name, pair) from exc

    async def _map_explicit(
        self,
        source: Any,
        destination: Any,
        pair: TypePair,
        context: _MappingContext,
    ) -> None:
        config = context.config
        winners = self._winning_mappings(pair, context)
        for prop in self._introspector.properties_of(pair.source):
            name = prop.name
            if not prop.readable or config.is_excluded(pair, name):
                continue
            mapping = winners.get(name)
            if mapping is None:
                continue
            target = self._introspector.find(
                pair.destination,
                mapping.destination_property,
                case_insensitive=context.case_insensitive,
            )
            if target is None or not target.writable:
                continue
            try:
                condition = config.condition(pair, name)
                if condition is not None and not condition(source):
                    _assign_default(destination, target, pair, config)
                    continue
                value = _read(source, prop)
                if value is None or value is _MISSING:
                    _assign_default(destination, target, pair, config)
                    continue
                pipeline = context.resolver.resolve(pair, name, prop.value_type, target.value_type)
                converted = await pipeline.apply(value)
                result = await self._convert_value(
                    converted,
                    target.value_type,
                    context,
                    pair=pair,
                    strict=True,
                    pipeline=pipeline,
                )
                setattr(destination, target.name, result)
            except Exception as exc:
                raise _wrap(exc, name, pair) from exc

    def _winning_mappings(
        self,
        pair: TypePair,
        context: _MappingContext,
    ) -> dict[str, PropertyMapping]:
        """Pick one source property per destination property.

        Explicit mappings compete by priority (first registered wins a tie).
        Source properties without an explicit mapping fall back to a
        same-name or ``MapTo`` destination, losing to any explicit rule.
        """
        by_destination: dict[str, PropertyMapping] = {}
        explicit = context.config.property_mappings(pair)
        for mapping in explicit:
            key = self._destination_key(pair, mapping.destination_property, context)
            current = by_destination.get(key)
            if current is None or mapping.priority > current.priority:
                by_destination[key] = mapping

        mapped_sources = {mapping.source_property for mapping in explicit}
        for prop in self._introspector.properties_of(pair.source):
            if prop.name in mapped_sources:
                continue
            target = self._introspector.find(
                pair.destination,
                prop.map_to or prop.name,
                case_insensitive=context.case_insensitive,
            )
            if target is None:
                continue
            by_destination.setdefault(target.name, PropertyMapping(prop.name, target.name))
        return {mapping.source_property: mapping for mapping in by_destination.values()}

    def _destination_key(self, pair: TypePair, name: str, context: _MappingContext) -> str:
        target = self._introspector.find(
            pair.destination, name, case_insensitive=context.case_insensitive
        )
        return target.name if target is not None else name

    # -----------------------------
    # Dispatch
    # -----------------------------
    async def _convert_value(
        self,
        value: Any,
        destination_type: Any,
        context: _MappingContext,
        *,
        pair: TypePair | None,
        strict: bool,
        pipeline: ConversionPipeline = IDENTITY,
    ) -> Any:
        """Shape ``value`` for a destination of ``destination_type``.

        Returns ``_SKIP`` in non-strict (automatic) mode when the value does
        not fit; strict mode raises ``TypeMismatchError`` instead.
        """
        if value is None:
            return None
        target_type = unwrap_optional(destination_type)
        if is_any(target_type):
            return value

        if is_simple_type(target_type):
            if value_fits(value, destination_type):
                return value
            if strict and not pipeline.converted:
                fallback = context.resolver.resolve_fallback(pair, type(value), destination_type)
                if fallback is not None:
                    logger.debug("using fallback converter for %s value", type(value).__name__)
                    value = await fallback.invoke(value)
                    if value_fits(value, destination_type):
                        return value
            return _mismatch(value, destination_type, strict)

        if is_mapping_type(target_type):
            if not isinstance(value, Mapping):
                return _mismatch(value, destination_type, strict)
            value_type = mapping_value_type(target_type)
            copied = {
                key: await self._map_element(item, value_type, context, strict)
                for key, item in value.items()
            }
            if not strict and any(item is _SKIP for item in copied.values()):
                return _SKIP
            return copied

        if is_ordered_collection(target_type) or is_set_type(target_type):
            if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
                return _mismatch(value, destination_type, strict)
            try:
                rebuilt = await materialize_sequence(
                    value,
                    target_type,
                    visited=context.visited,
                    map_element=lambda item, element_type: self._map_element(
                        item, element_type, context, strict
                    ),
                )
            except TypeMismatchError:
                if strict:
                    raise
                return _SKIP
            if not strict and any(item is _SKIP for item in rebuilt):
                return _SKIP
            return rebuilt

        if pipeline.converted and value_fits(value, target_type):
            return value
        if is_simple_type(type(value)):
            return _mismatch(value, destination_type, strict)
        if context.visited is not None and id(value) in context.visited:
            logger.debug("breaking cycle at %s reference", type(value).__name__)
            return None
        nested = _instantiate(target_type, context.config)
        await self._map_instance(value, nested, context)
        return nested

    async def _map_element(
        self,
        item: Any,
        element_type: Any,
        context: _MappingContext,
        strict: bool,
    ) -> Any:
        if is_any(unwrap_optional(element_type)):
            return item
        return await self._convert_value(item, element_type, context, pair=None, strict=strict)


def _read(source: Any, prop: PropertyDescriptor) -> Any:
    try:
        return getattr(source, prop.name)
    except AttributeError:
        return _MISSING


def _assign_default(
    destination: Any,
    target: PropertyDescriptor,
    pair: TypePair,
    config: MappingConfiguration,
) -> None:
    if config.has_default_value(pair, target.name):
        setattr(destination, target.name, config.default_value(pair, target.name))


def _instantiate(tp: Any, config: MappingConfiguration) -> Any:
    factory = config.factory_for(tp) if isinstance(tp, type) else None
    if factory is None:
        if not isinstance(tp, type):
            raise InstantiationError(f"Cannot create instance of {tp!r}: not a class.")
        factory = tp
    try:
        return factory()
    except Exception as exc:
        raise InstantiationError(
            f"Cannot create instance of {getattr(tp, '__name__', tp)}: {exc}"
        ) from exc


def _mismatch(value: Any, destination_type: Any, strict: bool) -> Any:
    if not strict:
        return _SKIP
    raise TypeMismatchError(
        f"Type mismatch: cannot map from {type(value).__name__} "
        f"to {getattr(destination_type, '__name__', destination_type)}"
    )


def _wrap(exc: Exception, property_name: str, pair: TypePair) -> FlexmapError:
    return MappingError(
        f"Failed to map property '{property_name}' from {pair.source.__name__} "
        f"to {pair.destination.__name__}: {exc}",
        property_name=property_name,
        source_type=pair.source,
        destination_type=pair.destination,
    )


def _run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Drive a mapping coroutine to completion from synchronous code."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    coro.close()
    raise MappingError(
        "Synchronous mapping cannot run inside a running event loop; "
        "await the *_async variant instead."
    )
