"""Converter provider registry and discovery helpers."""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from collections.abc import Iterable
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

from flexmap.errors import ProviderError
from flexmap.plugins.base import ConverterProvider
from flexmap.plugins.builtins import BuiltinConverterProvider

if TYPE_CHECKING:
    from flexmap.configuration import MappingConfiguration

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Named, ordered collection of converter providers."""

    def __init__(self) -> None:
        self._providers: dict[str, ConverterProvider] = {}

    def register(self, provider: ConverterProvider) -> None:
        """Register provider instance by unique name.

        Parameters
        ----------
        provider : ConverterProvider
            Provider instance to register. Re-registering a name replaces the
            earlier provider.

        Raises
        ------
        ProviderError
            If the object is not a provider or has no usable name.
        """
        if not isinstance(provider, ConverterProvider):
            raise ProviderError(
                f"{type(provider).__name__} does not implement get_converters()."
            )
        name = getattr(provider, "name", "") or ""
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            raise ProviderError("Converter provider must define a non-empty 'name'.")
        logger.debug("registering converter provider %s", name)
        self._providers[name] = provider

    def names(self) -> list[str]:
        """Return registered provider names, sorted."""
        return sorted(self._providers.keys())

    def providers(self) -> list[ConverterProvider]:
        """Return providers in registration order."""
        return list(self._providers.values())

    def get(self, name: str) -> ConverterProvider:
        """Get provider by name.

        Raises
        ------
        ProviderError
            If no provider is registered under ``name``.
        """
        try:
            return self._providers[name]
        except KeyError as exc:
            raise ProviderError(
                f"Unknown provider '{name}'. Available providers: {', '.join(self.names())}"
            ) from exc

    def load_module(self, module_or_path: str) -> None:
        """Load providers from a module name or file path.

        .. warning::
            This executes code from the specified module. Only load providers
            from trusted sources.
        """
        module = import_module_or_path(module_or_path)
        _register_from_module(module, self)


def import_module_or_path(module_or_path: str) -> ModuleType:
    """Import module by import path or filesystem path.

    Parameters
    ----------
    module_or_path : str
        Python module path or local ``.py`` file path.

    Returns
    -------
    ModuleType
        Imported module object.

    Raises
    ------
    ProviderError
        If import cannot be completed.
    """
    candidate = Path(module_or_path)
    if candidate.exists():
        spec = importlib.util.spec_from_file_location(candidate.stem, candidate)
        if spec is None or spec.loader is None:
            raise ProviderError(f"Unable to load module from {candidate}.")
        module = importlib.util.module_from_spec(spec)
        # get_type_hints resolves annotations through sys.modules.
        sys.modules[spec.name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(spec.name, None)
            raise ProviderError(f"Unable to execute module {candidate}: {exc}") from exc
        return module

    try:
        return importlib.import_module(module_or_path)
    except Exception as exc:
        raise ProviderError(f"Unable to import module '{module_or_path}': {exc}") from exc


def _register_from_module(module: ModuleType, registry: ProviderRegistry) -> None:
    """Register provider definitions found in module."""
    if hasattr(module, "register_providers"):
        module.register_providers(registry)
        return

    providers_obj = getattr(module, "PROVIDERS", None)
    if providers_obj is not None:
        for provider in providers_obj:
            registry.register(provider)
        return

    provider_obj = getattr(module, "PROVIDER", None)
    if provider_obj is not None:
        registry.register(provider_obj)
        return

    raise ProviderError(
        "Provider module must expose register_providers(registry), PROVIDERS, or PROVIDER."
    )


def create_default_registry(
    extra_modules: Iterable[str] | None = None,
) -> ProviderRegistry:
    """Create registry holding the built-in provider plus ``extra_modules``."""
    registry = ProviderRegistry()
    registry.register(BuiltinConverterProvider())
    for module in extra_modules or []:
        registry.load_module(module)
    return registry


def create_default_configuration(
    extra_modules: Iterable[str] | None = None,
    fallback_modules: Iterable[str] | None = None,
) -> MappingConfiguration:
    """Build a configuration with providers and scanned fallbacks registered.

    Parameters
    ----------
    extra_modules : Iterable[str] | None, optional
        Modules or files exposing additional converter providers.
    fallback_modules : Iterable[str] | None, optional
        Modules or files whose ``@converter_fallback`` functions are scanned.

    Returns
    -------
    MappingConfiguration
        Configuration without any pair rules yet.
    """
    from flexmap.configuration import MappingConfiguration

    config = MappingConfiguration()
    for provider in create_default_registry(extra_modules).providers():
        config.add_converter_provider(provider)
    for module in fallback_modules or []:
        config.scan_converter_fallbacks(import_module_or_path(module))
    return config
