"""Unit tests for converter provider registry and module loading helpers."""

from __future__ import annotations

import types
from pathlib import Path
from typing import Any

import pytest

from flexmap.configuration import TypePair
from flexmap.errors import ProviderError
from flexmap.plugins.builtins import BuiltinConverterProvider
from flexmap.plugins.registry import (
    ProviderRegistry,
    _register_from_module,
    create_default_configuration,
    create_default_registry,
    import_module_or_path,
)


class _Provider:
    """Simple provider test double."""

    def __init__(self, name: str) -> None:
        self.name = name

    def get_converters(self) -> list[tuple[type, type, Any]]:
        return []


PROVIDER_SOURCE = '''
class Upper:
    name = "upper"

    def get_converters(self):
        async def shout(value):
            return str(value).upper()

        return [(str, bytes, shout)]


PROVIDER = Upper()
'''

FALLBACK_SOURCE = '''
from flexmap.declarative import converter_fallback


@converter_fallback(complex, str)
def complex_to_text(value):
    return f"{value.real}+{value.imag}i"
'''


def test_register_requires_non_empty_name() -> None:
    """Reject providers without a non-empty name."""
    registry = ProviderRegistry()
    with pytest.raises(ProviderError, match="non-empty 'name'"):
        registry.register(_Provider(name="  "))


def test_register_requires_get_converters() -> None:
    """Reject objects that are not providers."""
    with pytest.raises(ProviderError, match="get_converters"):
        ProviderRegistry().register(object())  # type: ignore[arg-type]


def test_get_unknown_provider_raises() -> None:
    """Raise clear error for unknown provider lookup."""
    registry = ProviderRegistry()
    registry.register(_Provider("known"))
    with pytest.raises(ProviderError, match="Unknown provider 'missing'.*known"):
        registry.get("missing")


def test_providers_keep_registration_order() -> None:
    """List providers in registration order and names sorted."""
    registry = ProviderRegistry()
    registry.register(_Provider("zeta"))
    registry.register(_Provider("alpha"))
    assert [provider.name for provider in registry.providers()] == ["zeta", "alpha"]
    assert registry.names() == ["alpha", "zeta"]


def test_register_from_module_variants() -> None:
    """Support register_providers, PROVIDERS and PROVIDER hooks."""
    registry = ProviderRegistry()

    hook = types.ModuleType("hook")
    hook.register_providers = lambda reg: reg.register(_Provider("hooked"))
    _register_from_module(hook, registry)

    many = types.ModuleType("many")
    many.PROVIDERS = [_Provider("one"), _Provider("two")]
    _register_from_module(many, registry)

    single = types.ModuleType("single")
    single.PROVIDER = _Provider("solo")
    _register_from_module(single, registry)

    assert registry.names() == ["hooked", "one", "solo", "two"]


def test_register_from_module_requires_hook() -> None:
    """Reject modules exposing no provider hook."""
    with pytest.raises(ProviderError, match="register_providers"):
        _register_from_module(types.ModuleType("empty"), ProviderRegistry())


def test_import_module_by_path(tmp_path: Path) -> None:
    """Load provider modules from a filesystem path."""
    path = tmp_path / "upper_provider.py"
    path.write_text(PROVIDER_SOURCE)
    registry = ProviderRegistry()
    registry.load_module(str(path))
    assert registry.names() == ["upper"]


def test_import_module_failures_raise_provider_error(tmp_path: Path) -> None:
    """Wrap import and execution failures."""
    with pytest.raises(ProviderError, match="Unable to import"):
        import_module_or_path("flexmap_missing_module_xyz")
    broken = tmp_path / "broken.py"
    broken.write_text("raise RuntimeError('boom')\n")
    with pytest.raises(ProviderError, match="boom"):
        import_module_or_path(str(broken))


def test_default_registry_contains_builtin() -> None:
    """Register the built-in provider by default."""
    registry = create_default_registry()
    assert registry.names() == ["builtin"]
    assert isinstance(registry.get("builtin"), BuiltinConverterProvider)


def test_default_configuration_wires_providers_and_fallbacks(tmp_path: Path) -> None:
    """Register providers and scanned fallbacks on a fresh configuration."""
    provider_path = tmp_path / "upper_provider.py"
    provider_path.write_text(PROVIDER_SOURCE)
    fallback_path = tmp_path / "complex_fallbacks.py"
    fallback_path.write_text(FALLBACK_SOURCE)

    config = create_default_configuration(
        extra_modules=[str(provider_path)],
        fallback_modules=[str(fallback_path)],
    )
    assert [provider.name for provider in config.providers] == ["builtin", "upper"]
    assert config.pairs() == ()
    assert config.get_converter_fallback(None, int, str) is not None
    assert config.get_converter_fallback(None, str, bytes) is not None
    found = config.get_converter_fallback(TypePair(int, str), complex, str)
    assert found is not None
    assert found.kind == "sync"
