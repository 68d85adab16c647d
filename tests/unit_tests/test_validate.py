"""Unit tests for explicit configuration validation."""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass

import pytest

from flexmap.application.options import ValidationOptions
from flexmap.configuration import MappingConfiguration, TypePair
from flexmap.errors import ArgumentError, ConfigurationConflictError, ConfigurationError
from flexmap.plugins.builtins import BuiltinConverterProvider
from flexmap.validate import ConfigurationValidator


@dataclass
class Person:
    first_name: str = ""
    nickname: str = ""
    age: int = 0


@dataclass
class PersonDto:
    display_name: str = ""
    age: str = ""

    @property
    def summary(self) -> str:
        return self.display_name


def _base() -> MappingConfiguration:
    return MappingConfiguration().for_types(Person, PersonDto)


def test_equal_top_priorities_conflict() -> None:
    """Report the destination property and priority of a tie."""
    config = (
        _base()
        .map_property("first_name", "display_name", priority=5)
        .map_property("nickname", "display_name", priority=5)
    )
    with pytest.raises(ConfigurationConflictError, match="display_name") as info:
        config.validate()
    assert info.value.destination_property == "display_name"
    assert info.value.priority == 5


def test_distinct_priorities_pass() -> None:
    """Accept competing mappings with a unique winner."""
    config = (
        _base()
        .map_property("first_name", "display_name", priority=5)
        .map_property("nickname", "display_name", priority=3)
    )
    report = config.validate(options=ValidationOptions(check_types=False))
    assert report.pairs == (TypePair(Person, PersonDto),)
    assert report.property_mappings == 2
    assert "types" not in report.checks


def test_lower_priority_tie_is_not_a_conflict() -> None:
    """Only a tie at the top priority conflicts."""
    config = (
        _base()
        .map_property("first_name", "display_name", priority=9)
        .map_property("nickname", "display_name", priority=1)
        .map_property("age", "display_name", priority=1)
        .convert_property("age", str)
    )
    config.validate()


def test_missing_source_property() -> None:
    """Reject mappings from properties the source type lacks."""
    config = _base().map_property("surname", "display_name")
    with pytest.raises(ConfigurationError, match="surname"):
        config.validate()


def test_missing_destination_property() -> None:
    """Reject mappings to properties the destination type lacks."""
    config = _base().map_property("first_name", "title")
    with pytest.raises(ConfigurationError, match="title"):
        config.validate()


def test_read_only_destination_property() -> None:
    """Reject mappings to properties without a setter."""
    config = _base().map_property("first_name", "summary")
    with pytest.raises(ConfigurationError, match="not writable"):
        config.validate()


def test_type_mismatch_recommends_converter() -> None:
    """Point at the converter APIs for incompatible simple types."""
    config = _base().map_property("age", "age")
    with pytest.raises(ConfigurationError, match="convert_property"):
        config.validate()


def test_converter_or_fallback_satisfies_type_check() -> None:
    """Accept incompatible types once a converter path exists."""
    _base().map_property("age", "age").convert_property("age", str).validate()
    (
        MappingConfiguration()
        .add_converter_provider(BuiltinConverterProvider())
        .for_types(Person, PersonDto)
        .map_property("age", "age")
        .validate()
    )


def test_transformer_signature_mismatch() -> None:
    """Reject transformers whose declared input does not fit the value."""

    def double(value: int) -> int:
        return value * 2

    config = _base().map_property("first_name", "display_name").transform_property(
        "first_name", double
    )
    with pytest.raises(ConfigurationError, match="accepts int"):
        config.validate()


def test_transformer_checked_against_converted_type() -> None:
    """Check transformers against the converter's output type."""

    def pad(value: str) -> str:
        return value.zfill(3)

    config = (
        _base()
        .map_property("age", "age")
        .convert_property("age", str)
        .transform_property("age", pad)
    )
    config.validate()


def test_async_transformer_return_is_unwrapped() -> None:
    """Compare the awaited result type of async transformers."""

    def shout(value: str) -> Awaitable[str]:
        raise NotImplementedError

    async def length(value: str) -> int:
        return len(value)

    _base().transform_property_async("first_name", shout).validate()
    bad = _base().transform_property_async("nickname", length)
    with pytest.raises(ConfigurationError, match="returns int"):
        bad.validate()


def test_unannotated_transformers_are_skipped() -> None:
    """Skip signature checks where nothing is declared."""
    _base().transform_property("first_name", lambda value: value).validate()


def test_unknown_exclusion_and_default_targets() -> None:
    """Reject exclusions and defaults that name unknown properties."""
    with pytest.raises(ConfigurationError, match="Excluded property 'ghost'"):
        _base().exclude_property("ghost").validate()
    with pytest.raises(ConfigurationError, match="Default value target 'ghost'"):
        _base().set_default_value("ghost", 1).validate()


def test_checks_can_be_disabled() -> None:
    """Skip every disabled check."""
    config = _base().map_property("surname", "title").exclude_property("ghost")
    options = ValidationOptions(
        check_existence=False,
        check_types=False,
        check_exclusions=False,
    )
    report = ConfigurationValidator(config).validate(options=options)
    assert report.checks == ("priorities", "transformers")


def test_validation_can_target_specific_pairs() -> None:
    """Validate only the requested pairs."""
    config = _base().map_property("surname", "title").reset()
    config.for_types(PersonDto, Person).map_property("display_name", "first_name")
    report = config.validate(pairs=[(PersonDto, Person)])
    assert report.pairs == (TypePair(PersonDto, Person),)
    with pytest.raises(ArgumentError):
        config.validate(pairs=["Person"])  # type: ignore[list-item]
