"""Converter provider interfaces and registry for fallback conversions."""

from .base import ConverterProvider
from .builtins import BuiltinConverterProvider
from .registry import ProviderRegistry, create_default_configuration, create_default_registry

__all__ = [
    "BuiltinConverterProvider",
    "ConverterProvider",
    "ProviderRegistry",
    "create_default_configuration",
    "create_default_registry",
]
