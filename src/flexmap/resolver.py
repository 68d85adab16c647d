"""Resolve the value-conversion pipeline for one property key."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from flexmap.configuration import MappingConfiguration, TypePair, ValueFunction

logger = logging.getLogger(__name__)

PipelineSource: TypeAlias = Literal["pipeline", "converter", "fallback", "transformers", "identity"]


@dataclass(frozen=True)
class ConversionPipeline:
    """Ordered stages applied to a source value before assignment."""

    stages: tuple[ValueFunction, ...] = ()
    source: PipelineSource = "identity"
    converted: bool = False

    async def apply(self, value: Any) -> Any:
        """Run every stage in order, awaiting async stages before the next one."""
        for stage in self.stages:
            value = await stage.invoke(value)
        return value


IDENTITY = ConversionPipeline()


class ConversionResolver:
    """Pick converters and transformers for a property in fixed precedence.

    1. A composed pipeline, when present, is authoritative.
    2. Otherwise async converter, sync converter, then fallback converter,
       followed by the async and sync transformer chains.
    3. Otherwise the value passes through unchanged.

    The resolver only reads the configuration.
    """

    def __init__(self, config: MappingConfiguration) -> None:
        self._config = config

    def resolve(
        self,
        pair: TypePair,
        source_property: str,
        source_type: Any,
        destination_type: Any,
    ) -> ConversionPipeline:
        composed = self._config.pipeline(pair, source_property)
        if composed is not None:
            converter = composed.async_converter or composed.converter
            stages = [converter] if converter is not None else []
            stages.extend(step.function for step in _ascending(composed.async_transformers))
            stages.extend(step.function for step in _ascending(composed.transformers))
            return ConversionPipeline(
                stages=tuple(stages),
                source="pipeline",
                converted=converter is not None,
            )

        stages: list[ValueFunction] = []
        source: PipelineSource = "identity"
        converter = self._config.async_converter(pair, source_property) or self._config.converter(
            pair, source_property
        )
        if converter is None:
            converter = self._config.get_converter_fallback(pair, source_type, destination_type)
            if converter is not None:
                logger.debug(
                    "using fallback converter for %s.%s (%s -> %s)",
                    pair,
                    source_property,
                    source_type,
                    destination_type,
                )
                source = "fallback"
        else:
            source = "converter"
        if converter is not None:
            stages.append(converter)

        chains = [
            step.function
            for step in (
                *self._config.async_transformers(pair, source_property),
                *self._config.transformers(pair, source_property),
            )
        ]
        if chains and source == "identity":
            source = "transformers"
        stages.extend(chains)
        if not stages:
            return IDENTITY
        return ConversionPipeline(stages=tuple(stages), source=source, converted=converter is not None)

    def resolve_fallback(
        self,
        pair: TypePair | None,
        value_type: Any,
        destination_type: Any,
    ) -> ValueFunction | None:
        """Fallback converter for a runtime value type, used before a type-mismatch error."""
        return self._config.get_converter_fallback(pair, value_type, destination_type)


def _ascending(steps: tuple[Any, ...]) -> tuple[Any, ...]:
    return tuple(sorted(steps, key=lambda step: step.order))
