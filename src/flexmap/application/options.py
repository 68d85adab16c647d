"""Typed option objects shared across mapping and validation entry points."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MapOptions:
    """Per-call mapping behaviour."""

    handle_circular: bool = True
    case_insensitive: bool = False


@dataclass(frozen=True)
class ValidationOptions:
    """Checks run by ``MappingConfiguration.validate``."""

    check_priorities: bool = True
    check_existence: bool = True
    check_types: bool = True
    check_transformers: bool = True
    check_exclusions: bool = True
