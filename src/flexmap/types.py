"""Shared type aliases for converter, transformer and finalizer callables."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Literal, TypeAlias

FunctionKind: TypeAlias = Literal["sync", "async"]

Converter: TypeAlias = Callable[[Any], Any]
AsyncConverter: TypeAlias = Callable[[Any], Awaitable[Any]]
Transformer: TypeAlias = Callable[[Any], Any]
AsyncTransformer: TypeAlias = Callable[[Any], Awaitable[Any]]
Predicate: TypeAlias = Callable[[Any], bool]
Finalizer: TypeAlias = Callable[[Any], None] | Callable[[Any], Awaitable[None]]
Factory: TypeAlias = Callable[[], Any]
ConverterTriple: TypeAlias = tuple[type, type, AsyncConverter]
