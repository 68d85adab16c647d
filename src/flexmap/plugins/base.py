"""Provider protocol for pluggable fallback converters."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from flexmap.types import ConverterTriple


@runtime_checkable
class ConverterProvider(Protocol):
    """Protocol implemented by converter providers."""

    def get_converters(self) -> Iterable[ConverterTriple]:
        """List the converters this provider offers.

        Returns
        -------
        Iterable[tuple[type, type, AsyncConverter]]
            ``(source_type, destination_type, converter)`` triples. Each
            converter is an async function from value to value.
        """
