"""Application-layer option objects, ports and results."""

from __future__ import annotations

from flexmap.application.options import MapOptions, ValidationOptions
from flexmap.application.ports import TypeIntrospector
from flexmap.application.results import ValidationReport

__all__ = [
    "MapOptions",
    "TypeIntrospector",
    "ValidationOptions",
    "ValidationReport",
]
