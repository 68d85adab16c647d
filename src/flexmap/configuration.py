"""Fluent mapping configuration: per type-pair rules and fallback registries.

The configuration is typed storage only. It is expected to be fully built
before mapping starts; mutating it while a mapping call is in flight (from
any thread) is undefined behaviour and is the caller's responsibility.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import ModuleType
from typing import TYPE_CHECKING, Any, TypeAlias

from pydantic import BaseModel, ValidationError

from flexmap.declarative import iter_converter_fallbacks
from flexmap.descriptors import unwrap_optional
from flexmap.errors import ArgumentError, ConfigurationStateError
from flexmap.plugins.base import ConverterProvider
from flexmap.schemas import (
    FallbackArgs,
    PropertyFunctionArgs,
    PropertyMappingArgs,
    PropertyNameArgs,
    TypePairArgs,
)
from flexmap.types import (
    AsyncConverter,
    AsyncTransformer,
    Converter,
    Factory,
    FunctionKind,
    Predicate,
    Transformer,
)

if TYPE_CHECKING:
    from flexmap.application.options import ValidationOptions
    from flexmap.application.results import ValidationReport

logger = logging.getLogger(__name__)

_MISSING: Any = object()


@dataclass(frozen=True)
class TypePair:
    """Identity key scoping configuration rules."""

    source: type
    destination: type

    def __str__(self) -> str:
        return f"{_type_name(self.source)} -> {_type_name(self.destination)}"


@dataclass(frozen=True)
class PropertyMapping:
    """Route one source property to one destination property."""

    source_property: str
    destination_property: str
    priority: int = 0


@dataclass(frozen=True)
class ValueFunction:
    """Converter or transformer tagged with its call shape."""

    kind: FunctionKind
    func: Callable[[Any], Any]

    @classmethod
    def sync(cls, func: Callable[[Any], Any]) -> ValueFunction:
        return cls(kind="sync", func=func)

    @classmethod
    def asynchronous(cls, func: Callable[[Any], Any]) -> ValueFunction:
        return cls(kind="async", func=func)

    async def invoke(self, value: Any) -> Any:
        if self.kind == "async":
            return await self.func(value)
        return self.func(value)

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))


@dataclass(frozen=True)
class TransformerStep:
    """One entry of a transformer chain."""

    function: ValueFunction
    order: int = 0


@dataclass(frozen=True)
class ComposedPipeline:
    """Explicit converter and transformer bundle for one property key."""

    converter: ValueFunction | None = None
    async_converter: ValueFunction | None = None
    transformers: tuple[TransformerStep, ...] = ()
    async_transformers: tuple[TransformerStep, ...] = ()


PropertyKey: TypeAlias = tuple[TypePair, str]


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


def _parse(schema: type[BaseModel], label: str, **values: Any) -> Any:
    try:
        return schema(**values)
    except ValidationError as exc:
        raise ArgumentError(f"Invalid {label} arguments: {exc}") from exc


def _ordered(steps: Iterable[TransformerStep]) -> tuple[TransformerStep, ...]:
    return tuple(sorted(steps, key=lambda step: step.order))


def _same_value_type(left: Any, right: Any) -> bool:
    return unwrap_optional(left) == unwrap_optional(right)


class MappingConfiguration:
    """Accumulating rule set keyed by ``(source type, destination type)`` pairs.

    Parameters
    ----------
    strict_context : bool, default=False
        When ``True``, ``for_types`` refuses to switch from one active pair
        to another unless ``reset()`` was called in between.

    Examples
    --------
    >>> config = (
    ...     MappingConfiguration()
    ...     .for_types(UserRecord, UserDto)
    ...     .map_property("username", "login", priority=5)
    ...     .exclude_property("password_hash")
    ... )
    """

    def __init__(self, *, strict_context: bool = False) -> None:
        self._strict_context = strict_context
        self._current: TypePair | None = None
        self._rule_pairs: dict[TypePair, None] = {}
        self._property_mappings: dict[TypePair, dict[str, PropertyMapping]] = {}
        self._excluded: set[tuple[TypePair, str]] = set()
        self._global_exclusions: set[str] = set()
        self._defaults: dict[PropertyKey, Any] = {}
        self._conditions: dict[PropertyKey, Predicate] = {}
        self._converters: dict[PropertyKey, ValueFunction] = {}
        self._async_converters: dict[PropertyKey, ValueFunction] = {}
        self._transformers: dict[PropertyKey, list[TransformerStep]] = {}
        self._async_transformers: dict[PropertyKey, list[TransformerStep]] = {}
        self._pipelines: dict[PropertyKey, ComposedPipeline] = {}
        self._fallbacks: dict[TypePair, dict[tuple[Any, Any], ValueFunction]] = {}
        self._annotated_fallbacks: dict[tuple[Any, Any], ValueFunction] = {}
        self._providers: list[ConverterProvider] = []
        self._factories: dict[type, Factory] = {}

    # -----------------------------
    # Context
    # -----------------------------
    @property
    def current_pair(self) -> TypePair | None:
        return self._current

    def for_types(self, source_type: type, destination_type: type) -> MappingConfiguration:
        """Set the type pair that subsequent mutators apply to.

        Parameters
        ----------
        source_type : type
            Type of the instances being mapped.
        destination_type : type
            Type being produced. Must be default-constructible or have a
            factory registered with ``register_factory``.

        Returns
        -------
        MappingConfiguration
            ``self`` for chaining.

        Raises
        ------
        ConfigurationStateError
            In strict-context mode, if a different pair is already active.
        """
        args = _parse(
            TypePairArgs,
            "for_types",
            source_type=source_type,
            destination_type=destination_type,
        )
        pair = TypePair(args.source_type, args.destination_type)
        if self._current is not None and self._current != pair:
            if self._strict_context:
                raise ConfigurationStateError(
                    f"Configuration context is still bound to {self._current}. "
                    "Call reset() before configuring another type pair."
                )
            logger.debug("switching configuration context from %s to %s", self._current, pair)
        self._current = pair
        return self

    def reset(self) -> MappingConfiguration:
        """Clear the current pair without discarding accumulated rules."""
        self._current = None
        return self

    def _require_pair(self, action: str) -> TypePair:
        if self._current is None:
            raise ConfigurationStateError(
                f"Call for_types(source_type, destination_type) before {action}."
            )
        return self._current

    # -----------------------------
    # Pair-scoped mutators
    # -----------------------------
    def map_property(
        self,
        source_property: str,
        destination_property: str,
        priority: int = 0,
    ) -> MappingConfiguration:
        """Map a source property to a destination property.

        Remapping the same source property replaces the earlier rule. When
        several source properties target one destination, the highest
        priority wins.
        """
        args = _parse(
            PropertyMappingArgs,
            "map_property",
            source_property=source_property,
            destination_property=destination_property,
            priority=priority,
        )
        pair = self._require_pair("mapping properties")
        self._store_mapping(pair, args.source_property, args.destination_property, args.priority)
        return self

    def map_property_if(
        self,
        source_property: str,
        destination_property: str,
        predicate: Predicate,
        priority: int = 0,
    ) -> MappingConfiguration:
        """Map a property only when ``predicate(source)`` is true."""
        args = _parse(
            PropertyMappingArgs,
            "map_property_if",
            source_property=source_property,
            destination_property=destination_property,
            priority=priority,
        )
        condition = _parse(
            PropertyFunctionArgs,
            "map_property_if",
            property_name=source_property,
            function=predicate,
        )
        pair = self._require_pair("mapping properties")
        self._store_mapping(pair, args.source_property, args.destination_property, args.priority)
        self._conditions[(pair, args.source_property)] = condition.function
        return self

    def exclude_property(self, property_name: str) -> MappingConfiguration:
        """Exclude a source property from mapping for the current pair."""
        args = _parse(PropertyNameArgs, "exclude_property", name=property_name)
        pair = self._require_pair("excluding properties")
        self._note_pair(pair)
        self._excluded.add((pair, args.name))
        return self

    def set_default_value(self, destination_property: str, value: Any) -> MappingConfiguration:
        """Use ``value`` when the mapped source value is ``None``."""
        args = _parse(PropertyNameArgs, "set_default_value", name=destination_property)
        pair = self._require_pair("setting default values")
        self._note_pair(pair)
        self._defaults[(pair, args.name)] = value
        return self

    def convert_property(self, source_property: str, converter: Converter) -> MappingConfiguration:
        """Register a synchronous converter for a source property."""
        return self._store_converter(self._converters, "convert_property", source_property, converter, "sync")

    def convert_property_async(
        self,
        source_property: str,
        converter: AsyncConverter,
    ) -> MappingConfiguration:
        """Register an asynchronous converter for a source property."""
        return self._store_converter(
            self._async_converters, "convert_property_async", source_property, converter, "async"
        )

    def transform_property(
        self,
        source_property: str,
        transformer: Transformer,
        order: int = 0,
    ) -> MappingConfiguration:
        """Append a synchronous transformer; chains run in ascending ``order``."""
        return self._store_transformer(
            self._transformers, "transform_property", source_property, transformer, order, "sync"
        )

    def transform_property_async(
        self,
        source_property: str,
        transformer: AsyncTransformer,
        order: int = 0,
    ) -> MappingConfiguration:
        """Append an asynchronous transformer; the async chain runs before the sync one."""
        return self._store_transformer(
            self._async_transformers,
            "transform_property_async",
            source_property,
            transformer,
            order,
            "async",
        )

    def compose_pipeline(
        self,
        source_property: str,
        *,
        converter: Converter | None = None,
        async_converter: AsyncConverter | None = None,
        transformers: Sequence[Transformer] = (),
        async_transformers: Sequence[AsyncTransformer] = (),
    ) -> MappingConfiguration:
        """Define an explicit pipeline that overrides ad hoc rules for a property.

        Parameters
        ----------
        source_property : str
            Source property the pipeline applies to.
        converter, async_converter : callable, optional
            Converters; the async one is preferred when both are given.
        transformers, async_transformers : sequence of callables
            Applied in list order, async transformers first.

        Returns
        -------
        MappingConfiguration
            ``self`` for chaining.
        """
        name = _parse(PropertyNameArgs, "compose_pipeline", name=source_property).name
        for func in (*transformers, *async_transformers):
            _parse(PropertyFunctionArgs, "compose_pipeline", property_name=name, function=func)
        pair = self._require_pair("composing pipelines")
        self._note_pair(pair)
        self._pipelines[(pair, name)] = ComposedPipeline(
            converter=ValueFunction.sync(converter) if converter is not None else None,
            async_converter=(
                ValueFunction.asynchronous(async_converter) if async_converter is not None else None
            ),
            transformers=tuple(
                TransformerStep(ValueFunction.sync(func), index)
                for index, func in enumerate(transformers)
            ),
            async_transformers=tuple(
                TransformerStep(ValueFunction.asynchronous(func), index)
                for index, func in enumerate(async_transformers)
            ),
        )
        return self

    def add_converter_fallback(
        self,
        source_value_type: Any,
        destination_value_type: Any,
        converter: Converter | AsyncConverter,
    ) -> MappingConfiguration:
        """Register a last-resort value-type converter for the current pair.

        Coroutine functions are awaited; plain functions are called directly.
        """
        args = _parse(
            FallbackArgs,
            "add_converter_fallback",
            source_value_type=source_value_type,
            destination_value_type=destination_value_type,
            converter=converter,
        )
        pair = self._require_pair("adding converter fallbacks")
        self._note_pair(pair)
        self._fallbacks.setdefault(pair, {})[
            (args.source_value_type, args.destination_value_type)
        ] = _tag(args.converter)
        return self

    # -----------------------------
    # Pair-independent mutators
    # -----------------------------
    def globally_exclude_property(self, property_name: str) -> MappingConfiguration:
        """Exclude a property name from explicit mapping for every pair."""
        args = _parse(PropertyNameArgs, "globally_exclude_property", name=property_name)
        self._global_exclusions.add(args.name)
        return self

    def add_converter_provider(self, provider: ConverterProvider) -> MappingConfiguration:
        """Register a pluggable provider queried for fallback converters."""
        if provider is None or not isinstance(provider, ConverterProvider):
            raise ArgumentError("Converter provider must define get_converters().")
        self._providers.append(provider)
        return self

    def scan_converter_fallbacks(self, *modules: ModuleType) -> MappingConfiguration:
        """Register ``@converter_fallback`` functions found in ``modules``."""
        for module in modules:
            if module is None:
                raise ArgumentError("Module to scan cannot be None.")
            for source_type, destination_type, func in iter_converter_fallbacks(module):
                self._annotated_fallbacks[(source_type, destination_type)] = _tag(func)
        return self

    def register_factory(self, tp: type, factory: Factory) -> MappingConfiguration:
        """Construct ``tp`` with ``factory`` instead of calling it without arguments."""
        if tp is None or factory is None or not callable(factory):
            raise ArgumentError("register_factory requires a type and a callable.")
        self._factories[tp] = factory
        return self

    def add_property_mapping(
        self,
        source_type: type,
        destination_type: type,
        source_property: str,
        destination_property: str,
        priority: int = 0,
    ) -> None:
        """Non-fluent variant of ``map_property`` that ignores the current pair."""
        pair_args = _parse(
            TypePairArgs,
            "add_property_mapping",
            source_type=source_type,
            destination_type=destination_type,
        )
        args = _parse(
            PropertyMappingArgs,
            "add_property_mapping",
            source_property=source_property,
            destination_property=destination_property,
            priority=priority,
        )
        pair = TypePair(pair_args.source_type, pair_args.destination_type)
        self._store_mapping(pair, args.source_property, args.destination_property, args.priority)

    def exclude_property_for(
        self,
        source_type: type,
        destination_type: type,
        property_name: str,
    ) -> None:
        """Non-fluent variant of ``exclude_property``."""
        pair_args = _parse(
            TypePairArgs,
            "exclude_property_for",
            source_type=source_type,
            destination_type=destination_type,
        )
        args = _parse(PropertyNameArgs, "exclude_property_for", name=property_name)
        pair = TypePair(pair_args.source_type, pair_args.destination_type)
        self._note_pair(pair)
        self._excluded.add((pair, args.name))

    def _note_pair(self, pair: TypePair) -> None:
        self._rule_pairs.setdefault(pair)

    def _store_mapping(self, pair: TypePair, source: str, destination: str, priority: int) -> None:
        self._note_pair(pair)
        self._property_mappings.setdefault(pair, {})[source] = PropertyMapping(
            source_property=source,
            destination_property=destination,
            priority=priority,
        )

    def _store_converter(
        self,
        table: dict[PropertyKey, ValueFunction],
        label: str,
        source_property: str,
        converter: Callable[[Any], Any],
        kind: FunctionKind,
    ) -> MappingConfiguration:
        args = _parse(PropertyFunctionArgs, label, property_name=source_property, function=converter)
        pair = self._require_pair("registering converters")
        self._note_pair(pair)
        table[(pair, args.property_name)] = ValueFunction(kind=kind, func=args.function)
        return self

    def _store_transformer(
        self,
        table: dict[PropertyKey, list[TransformerStep]],
        label: str,
        source_property: str,
        transformer: Callable[[Any], Any],
        order: int,
        kind: FunctionKind,
    ) -> MappingConfiguration:
        args = _parse(
            PropertyFunctionArgs,
            label,
            property_name=source_property,
            function=transformer,
            order=order,
        )
        pair = self._require_pair("registering transformers")
        self._note_pair(pair)
        table.setdefault((pair, args.property_name), []).append(
            TransformerStep(ValueFunction(kind=kind, func=args.function), args.order)
        )
        return self

    # -----------------------------
    # Read-only lookups
    # -----------------------------
    def pairs(self) -> tuple[TypePair, ...]:
        """Return every pair that carries at least one rule, in registration order."""
        return tuple(self._rule_pairs)

    def has_rules(self, pair: TypePair) -> bool:
        """Whether ``pair`` should be mapped in explicit mode."""
        return pair in self._rule_pairs

    def property_mappings(self, pair: TypePair) -> tuple[PropertyMapping, ...]:
        return tuple(self._property_mappings.get(pair, {}).values())

    def is_excluded(self, pair: TypePair, property_name: str) -> bool:
        return property_name in self._global_exclusions or (pair, property_name) in self._excluded

    def excluded_properties(self, pair: TypePair) -> tuple[str, ...]:
        return tuple(sorted(name for key, name in self._excluded if key == pair))

    @property
    def global_exclusions(self) -> frozenset[str]:
        return frozenset(self._global_exclusions)

    def default_value(self, pair: TypePair, destination_property: str, default: Any = _MISSING) -> Any:
        """Configured default for a destination property, or ``default``."""
        return self._defaults.get((pair, destination_property), default)

    def has_default_value(self, pair: TypePair, destination_property: str) -> bool:
        return (pair, destination_property) in self._defaults

    def default_values(self, pair: TypePair) -> Mapping[str, Any]:
        return {name: value for (key, name), value in self._defaults.items() if key == pair}

    def condition(self, pair: TypePair, source_property: str) -> Predicate | None:
        return self._conditions.get((pair, source_property))

    def converter(self, pair: TypePair, source_property: str) -> ValueFunction | None:
        return self._converters.get((pair, source_property))

    def async_converter(self, pair: TypePair, source_property: str) -> ValueFunction | None:
        return self._async_converters.get((pair, source_property))

    def transformers(self, pair: TypePair, source_property: str) -> tuple[TransformerStep, ...]:
        return _ordered(self._transformers.get((pair, source_property), ()))

    def async_transformers(self, pair: TypePair, source_property: str) -> tuple[TransformerStep, ...]:
        return _ordered(self._async_transformers.get((pair, source_property), ()))

    def transformed_properties(self, pair: TypePair) -> tuple[str, ...]:
        """Source properties with any transformer registered for ``pair``."""
        names = {
            name
            for key, name in (*self._transformers, *self._async_transformers, *self._pipelines)
            if key == pair
        }
        return tuple(sorted(names))

    def pipeline(self, pair: TypePair, source_property: str) -> ComposedPipeline | None:
        return self._pipelines.get((pair, source_property))

    def has_converter(self, pair: TypePair, source_property: str) -> bool:
        """Whether an explicit (non-fallback) converter applies to the key."""
        composed = self.pipeline(pair, source_property)
        if composed is not None:
            return composed.converter is not None or composed.async_converter is not None
        key = (pair, source_property)
        return key in self._converters or key in self._async_converters

    def get_converter_fallback(
        self,
        pair: TypePair | None,
        source_value_type: Any,
        destination_value_type: Any,
    ) -> ValueFunction | None:
        """Find a fallback converter between two value types.

        Sources are consulted in order: explicit registrations for ``pair``,
        scanned ``@converter_fallback`` functions, then providers. The first
        match wins.
        """
        if pair is not None:
            for (src, dst), func in self._fallbacks.get(pair, {}).items():
                if _same_value_type(src, source_value_type) and _same_value_type(
                    dst, destination_value_type
                ):
                    return func
        for (src, dst), func in self._annotated_fallbacks.items():
            if _same_value_type(src, source_value_type) and _same_value_type(
                dst, destination_value_type
            ):
                return func
        for provider in self._providers:
            for src, dst, func in provider.get_converters():
                if _same_value_type(src, source_value_type) and _same_value_type(
                    dst, destination_value_type
                ):
                    return ValueFunction.asynchronous(func)
        return None

    @property
    def providers(self) -> tuple[ConverterProvider, ...]:
        return tuple(self._providers)

    def factory_for(self, tp: type) -> Factory | None:
        return self._factories.get(tp)

    # -----------------------------
    # Validation
    # -----------------------------
    def validate(
        self,
        pairs: Iterable[TypePair | tuple[type, type]] | None = None,
        options: ValidationOptions | None = None,
    ) -> ValidationReport:
        """Statically check the configuration via lazy validator import.

        Raises
        ------
        ConfigurationError
            On the first failed check.
        """
        from flexmap.validate import ConfigurationValidator

        return ConfigurationValidator(self).validate(pairs=pairs, options=options)


def _tag(func: Callable[..., Any]) -> ValueFunction:
    if inspect.iscoroutinefunction(func):
        return ValueFunction.asynchronous(func)
    return ValueFunction.sync(func)
