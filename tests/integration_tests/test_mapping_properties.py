"""Integration tests for end-to-end mapping guarantees."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from flexmap import (
    ArgumentError,
    ConfigurationConflictError,
    MappingConfiguration,
    ObjectMapper,
)

pytestmark = pytest.mark.integration


@dataclass
class Line:
    sku: str = ""
    quantity: int = 0


@dataclass
class LineDto:
    sku: str = ""
    quantity: int = 0


@dataclass
class Order:
    number: int = 0
    customer: str = ""
    nickname: str = ""
    total: float = 0.0
    paid: bool = False
    lines: list[Line] = field(default_factory=list)
    parent: Order | None = None


@dataclass
class OrderDto:
    number: int = 0
    customer: str = ""
    nickname: str = ""
    total: float = 0.0
    paid: bool = False
    lines: tuple[LineDto, ...] = ()
    parent: OrderDto | None = None


@dataclass
class Badge:
    number: int = 0
    title: str = ""


@dataclass
class BadgeDto:
    number: str = ""
    title: str = "untitled"


_ORDERS = st.builds(
    Order,
    number=st.integers(),
    customer=st.text(),
    nickname=st.text(),
    total=st.floats(allow_nan=False),
    paid=st.booleans(),
    lines=st.lists(st.builds(Line, sku=st.text(), quantity=st.integers()), max_size=4),
)


def _scalars(item: Order | OrderDto) -> tuple[object, ...]:
    return (item.number, item.customer, item.nickname, item.total, item.paid)


@settings(max_examples=50, deadline=None)
@given(order=_ORDERS)
def test_automatic_round_trip_is_idempotent(order: Order) -> None:
    """Map forward, back and forward again without changing scalar values."""
    mapper = ObjectMapper()
    forward = mapper.map(order, OrderDto)
    back = mapper.map(forward, Order)
    again = mapper.map(back, OrderDto)
    assert _scalars(again) == _scalars(forward) == _scalars(order)
    assert [(line.sku, line.quantity) for line in again.lines] == [
        (line.sku, line.quantity) for line in order.lines
    ]


def _competing(config: MappingConfiguration, second_priority: int) -> MappingConfiguration:
    return (
        config.for_types(Order, OrderDto)
        .map_property("customer", "customer", priority=5)
        .map_property("nickname", "customer", priority=second_priority)
    )


def test_equal_priorities_fail_validation() -> None:
    """Fail validation naming the contested destination property."""
    config = _competing(MappingConfiguration(), 5)
    with pytest.raises(ConfigurationConflictError) as info:
        config.validate()
    assert info.value.destination_property == "customer"


def test_unequal_priorities_validate_and_apply_winner() -> None:
    """Validate and map only the priority-5 source."""
    config = _competing(MappingConfiguration(), 3)
    config.validate()
    dto = ObjectMapper(config).map(Order(customer="Ada", nickname="ace"), OrderDto)
    assert dto.customer == "Ada"


def test_self_reference_terminates() -> None:
    """Map non-circular properties and leave the circular one None."""
    order = Order(number=1, customer="Ada", lines=[Line("a", 1)])
    order.parent = order
    dto = ObjectMapper().map(order, OrderDto, handle_circular=True)
    assert dto.number == 1
    assert dto.customer == "Ada"
    assert dto.lines == (LineDto("a", 1),)
    assert dto.parent is None


def test_collection_maps_to_array_in_order() -> None:
    """Produce an array with each element mapped independently."""
    first, second = Line("first", 1), Line("second", 2)
    dto = ObjectMapper().map(Order(lines=[first, second]), OrderDto)
    assert isinstance(dto.lines, tuple)
    assert dto.lines == (LineDto("first", 1), LineDto("second", 2))


def test_converter_produces_text_from_integer() -> None:
    """Apply the registered converter where no implicit assignment exists."""
    config = MappingConfiguration().for_types(Badge, BadgeDto).convert_property(
        "number", lambda value: f"#{value}"
    )
    assert ObjectMapper(config).map(Badge(number=42), BadgeDto).number == "#42"


@pytest.mark.asyncio
async def test_null_source_fails_in_both_entry_points() -> None:
    """Fail with an argument error for None from sync and async calls."""
    mapper = ObjectMapper()
    with pytest.raises(ArgumentError):
        await mapper.map_async(None, OrderDto)
    with pytest.raises(ArgumentError):
        mapper.map(None, OrderDto)


@pytest.mark.parametrize(
    ("default", "expected"),
    [(None, "untitled"), ("configured", "configured")],
)
def test_false_condition_keeps_default(default: str | None, expected: str) -> None:
    """Keep the constructed or configured default when the predicate is false."""
    config = MappingConfiguration().for_types(Badge, BadgeDto)
    config.map_property_if("title", "title", lambda source: source.number > 100)
    config.convert_property("number", str)
    if default is not None:
        config.set_default_value("title", default)
    dto = ObjectMapper(config).map(Badge(number=1, title="Gold"), BadgeDto)
    assert dto.title == expected
