"""Rebuild collections of mapped elements."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Collection, Iterable
from typing import Any, TypeAlias

from flexmap.descriptors import collection_factory, element_type_of, is_simple_type, value_fits
from flexmap.errors import TypeMismatchError

logger = logging.getLogger(__name__)

ElementMapper: TypeAlias = Callable[[Any, Any], Awaitable[Any]]


async def materialize_sequence(
    items: Any,
    destination_type: Any,
    *,
    visited: set[int] | None,
    map_element: ElementMapper,
) -> Collection[Any]:
    """Map ``items`` into a fresh list, tuple, set or frozenset.

    Parameters
    ----------
    items
        Source iterable (not text).
    destination_type
        Declared destination collection type, e.g. ``list[Dto]``,
        ``tuple[Dto, ...]`` or ``frozenset[str]``.
    visited : set[int] | None
        Identities currently being mapped on this path; ``None`` disables
        the cycle guard.
    map_element
        Coroutine mapping one element to ``element_type``. Called for every
        element that is not a scalar already fitting the element type.

    Returns
    -------
    Collection
        Container of the destination's shape. Lists and tuples keep the
        length and order of ``items``; ``None`` elements and elements
        already on the current path become ``None``.

    Raises
    ------
    TypeMismatchError
        If ``items`` is not a collection, or a set destination receives
        unhashable mapped elements.
    """
    if isinstance(items, (str, bytes)) or not isinstance(items, Iterable):
        raise TypeMismatchError(
            f"Type mismatch: cannot map {type(items).__name__} to a collection."
        )

    element_type = element_type_of(destination_type)
    result: list[Any] = []
    for item in items:
        if item is None:
            result.append(None)
            continue
        if visited is not None and id(item) in visited:
            logger.debug("breaking cycle at %s element", type(item).__name__)
            result.append(None)
            continue
        if is_simple_type(type(item)) and value_fits(item, element_type):
            result.append(item)
            continue
        result.append(await map_element(item, element_type))

    factory = collection_factory(destination_type)
    try:
        return factory(result)
    except TypeError as exc:
        raise TypeMismatchError(
            f"Type mismatch: mapped elements cannot be stored in a {factory.__name__}: {exc}"
        ) from exc
