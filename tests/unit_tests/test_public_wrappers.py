"""Unit tests for the top-level convenience API."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

import flexmap
from flexmap import (
    ArgumentError,
    FlexmapError,
    MappingConfiguration,
    create_default_configuration,
    map_collection,
    map_collection_async,
    map_object,
    map_object_async,
)


@dataclass
class Source:
    code: int = 0
    label: str = ""


@dataclass
class Target:
    code: str = ""
    label: str = ""


def test_version_is_exposed() -> None:
    """Expose a package version string."""
    assert flexmap.__version__


def test_errors_share_a_root() -> None:
    """Derive every public error from FlexmapError."""
    for name in flexmap.__all__:
        obj = getattr(flexmap, name)
        if isinstance(obj, type) and issubclass(obj, Exception):
            assert issubclass(obj, FlexmapError)
    assert issubclass(ArgumentError, ValueError)


def test_map_object_with_default_configuration() -> None:
    """Map through the built-in fallbacks of the default configuration."""
    config = create_default_configuration().for_types(Source, Target).map_property("code", "code")
    target = map_object(Source(code=5, label="five"), Target, config)
    assert target == Target(code="5", label="five")


def test_map_object_automatic_without_config() -> None:
    """Fall back to automatic mode when no configuration is given."""
    assert map_object(Source(code=5, label="x"), Target) == Target(code="", label="x")


def test_map_collection_wrapper() -> None:
    """Map sequences through the module-level helper."""
    config = MappingConfiguration().for_types(Source, Target).convert_property("code", str)
    result = map_collection([Source(1), None, Source(2)], Target, config)
    assert [item.code for item in result] == ["1", "2"]


@pytest.mark.asyncio
async def test_async_wrappers() -> None:
    """Expose awaitable single and collection mapping."""
    config = MappingConfiguration().for_types(Source, Target).convert_property("code", hex)
    single = await map_object_async(Source(code=255), Target, config)
    many = await map_collection_async([Source(code=16)], Target, config)
    assert single.code == "0xff"
    assert many[0].code == "0x10"


@pytest.mark.asyncio
async def test_async_wrapper_rejects_none() -> None:
    """Reject None sources from the async helper."""
    with pytest.raises(ArgumentError):
        await map_object_async(None, Target)
