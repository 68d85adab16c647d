"""Application-layer result objects."""

from __future__ import annotations

from dataclasses import dataclass

from flexmap.configuration import TypePair


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of a successful configuration validation."""

    pairs: tuple[TypePair, ...]
    property_mappings: int
    checks: tuple[str, ...]
