"""Application ports separating the engine from type introspection."""

from __future__ import annotations

from typing import Any, Protocol

from flexmap.descriptors import PropertyDescriptor


class TypeIntrospector(Protocol):
    """Enumerate the accessible properties of a type."""

    def properties_of(self, tp: type) -> tuple[PropertyDescriptor, ...]:
        """Return the cached property list of ``tp``."""

    def find(
        self,
        tp: type,
        name: str,
        *,
        case_insensitive: bool = False,
    ) -> PropertyDescriptor | None:
        """Look up a single property by name."""

    def is_simple_type(self, tp: Any) -> bool:
        """Classify ``tp`` as scalar."""
