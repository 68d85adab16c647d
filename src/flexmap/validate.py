"""Static validation of mapping configurations."""

from __future__ import annotations

import inspect
import typing
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from typing import Any, get_args, get_origin

from flexmap.application.options import ValidationOptions
from flexmap.application.ports import TypeIntrospector
from flexmap.application.results import ValidationReport
from flexmap.configuration import (
    MappingConfiguration,
    TransformerStep,
    TypePair,
    ValueFunction,
)
from flexmap.descriptors import descriptor_cache, is_assignable, is_simple_type
from flexmap.errors import ArgumentError, ConfigurationConflictError, ConfigurationError

_AWAITABLE_ORIGINS = (Awaitable, Coroutine)


class ConfigurationValidator:
    """Opt-in strict checks over a built configuration.

    Validation never runs implicitly during mapping; an unvalidated
    configuration with conflicts still maps, resolving ties silently.
    """

    def __init__(
        self,
        config: MappingConfiguration,
        introspector: TypeIntrospector | None = None,
    ) -> None:
        self._config = config
        self._introspector = introspector or descriptor_cache

    def validate(
        self,
        pairs: Iterable[TypePair | tuple[type, type]] | None = None,
        options: ValidationOptions | None = None,
    ) -> ValidationReport:
        """Run the enabled checks for ``pairs`` (all configured pairs by default).

        Parameters
        ----------
        pairs : Iterable[TypePair | tuple[type, type]] | None, optional
            Restrict validation to these pairs.
        options : ValidationOptions | None, optional
            Toggle individual checks.

        Returns
        -------
        ValidationReport
            Summary of what was checked.

        Raises
        ------
        ConfigurationConflictError
            If two mappings share a destination and the top priority.
        ConfigurationError
            On any other failed check.
        """
        options = options or ValidationOptions()
        selected = self._select(pairs)
        checks = [
            ("priorities", options.check_priorities, self._check_priorities),
            ("existence", options.check_existence, self._check_existence),
            ("types", options.check_types, self._check_types),
            ("transformers", options.check_transformers, self._check_transformers),
            ("exclusions", options.check_exclusions, self._check_exclusions),
        ]
        for pair in selected:
            for _name, enabled, check in checks:
                if enabled:
                    check(pair)
        return ValidationReport(
            pairs=selected,
            property_mappings=sum(len(self._config.property_mappings(p)) for p in selected),
            checks=tuple(name for name, enabled, _check in checks if enabled),
        )

    def _select(self, pairs: Iterable[TypePair | tuple[type, type]] | None) -> tuple[TypePair, ...]:
        if pairs is None:
            return self._config.pairs()
        selected = []
        for item in pairs:
            if isinstance(item, TypePair):
                selected.append(item)
            elif isinstance(item, tuple) and len(item) == 2:
                selected.append(TypePair(item[0], item[1]))
            else:
                raise ArgumentError(f"Expected a TypePair or (source, destination) tuple, got {item!r}.")
        return tuple(selected)

    # -----------------------------
    # Checks
    # -----------------------------
    def _check_priorities(self, pair: TypePair) -> None:
        grouped: dict[str, list[int]] = {}
        for mapping in self._config.property_mappings(pair):
            grouped.setdefault(mapping.destination_property, []).append(mapping.priority)
        for destination, priorities in grouped.items():
            top = max(priorities)
            if priorities.count(top) > 1:
                raise ConfigurationConflictError(
                    f"Priority conflict on {pair}: destination property '{destination}' "
                    f"has {priorities.count(top)} mappings with priority {top}.",
                    destination_property=destination,
                    priority=top,
                )

    def _check_existence(self, pair: TypePair) -> None:
        for mapping in self._config.property_mappings(pair):
            if self._introspector.find(pair.source, mapping.source_property) is None:
                raise ConfigurationError(
                    f"Source property '{mapping.source_property}' does not exist on "
                    f"{pair.source.__name__}."
                )
            target = self._introspector.find(pair.destination, mapping.destination_property)
            if target is None:
                raise ConfigurationError(
                    f"Destination property '{mapping.destination_property}' does not exist on "
                    f"{pair.destination.__name__}."
                )
            if not target.writable:
                raise ConfigurationError(
                    f"Destination property '{mapping.destination_property}' on "
                    f"{pair.destination.__name__} is not writable."
                )

    def _check_types(self, pair: TypePair) -> None:
        for mapping in self._config.property_mappings(pair):
            source = self._introspector.find(pair.source, mapping.source_property)
            target = self._introspector.find(pair.destination, mapping.destination_property)
            if source is None or target is None or not is_simple_type(target.value_type):
                continue
            if self._config.has_converter(pair, mapping.source_property):
                continue
            if self._config.get_converter_fallback(pair, source.value_type, target.value_type):
                continue
            if not is_assignable(source.value_type, target.value_type):
                raise ConfigurationError(
                    f"Type mismatch on {pair}: '{mapping.source_property}' "
                    f"({_name(source.value_type)}) is not assignable to "
                    f"'{mapping.destination_property}' ({_name(target.value_type)}). "
                    "Register a converter with convert_property() or add_converter_fallback()."
                )

    def _check_transformers(self, pair: TypePair) -> None:
        for source_property in self._config.transformed_properties(pair):
            value_type = self._transformed_value_type(pair, source_property)
            if value_type is None:
                continue
            composed = self._config.pipeline(pair, source_property)
            if composed is not None:
                steps = (*composed.async_transformers, *composed.transformers)
            else:
                steps = (
                    *self._config.async_transformers(pair, source_property),
                    *self._config.transformers(pair, source_property),
                )
            for step in steps:
                _check_signature(pair, source_property, step, value_type)

    def _check_exclusions(self, pair: TypePair) -> None:
        for name in self._config.excluded_properties(pair):
            if self._introspector.find(pair.source, name) is None:
                raise ConfigurationError(
                    f"Excluded property '{name}' does not exist on {pair.source.__name__}."
                )
        for name in self._config.default_values(pair):
            if self._introspector.find(pair.destination, name) is None:
                raise ConfigurationError(
                    f"Default value target '{name}' does not exist on "
                    f"{pair.destination.__name__}."
                )

    def _transformed_value_type(self, pair: TypePair, source_property: str) -> Any | None:
        """Value type flowing through the transformer chain of a property."""
        source = self._introspector.find(pair.source, source_property)
        if source is None:
            return None
        destination_name = next(
            (
                mapping.destination_property
                for mapping in self._config.property_mappings(pair)
                if mapping.source_property == source_property
            ),
            source.map_to or source_property,
        )
        target = self._introspector.find(pair.destination, destination_name)
        converted = self._config.has_converter(pair, source_property) or (
            target is not None
            and self._config.pipeline(pair, source_property) is None
            and self._config.get_converter_fallback(pair, source.value_type, target.value_type)
            is not None
        )
        if not converted:
            return source.value_type
        return target.value_type if target is not None else None


def _check_signature(
    pair: TypePair,
    source_property: str,
    step: TransformerStep,
    value_type: Any,
) -> None:
    function = step.function
    accepts, returns = _declared_io(function)
    if accepts is not None and not is_assignable(value_type, accepts):
        raise ConfigurationError(
            f"Transformer {function.name} for '{source_property}' on {pair} accepts "
            f"{_name(accepts)} but the property value is {_name(value_type)}."
        )
    if returns is not None and not is_assignable(returns, value_type):
        raise ConfigurationError(
            f"Transformer {function.name} for '{source_property}' on {pair} returns "
            f"{_name(returns)} but the property value is {_name(value_type)}."
        )


def _declared_io(function: ValueFunction) -> tuple[Any | None, Any | None]:
    """Declared input and (awaited) output types; ``None`` where unannotated."""
    func: Callable[..., Any] = function.func
    try:
        hints = typing.get_type_hints(func)
        parameters = list(inspect.signature(func).parameters.values())
    except (NameError, TypeError, ValueError):
        return None, None
    accepts = hints.get(parameters[0].name) if parameters else None
    returns = hints.get("return")
    if returns is not None and function.kind == "async" and get_origin(returns) in _AWAITABLE_ORIGINS:
        args = get_args(returns)
        returns = args[-1] if args else None
    return accepts, returns


def _name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)
