#!/usr/bin/env python3
"""Example converter provider module.

Load it with ``flexmap providers --provider-module examples/money_provider.py``
or ``create_default_configuration(extra_modules=["examples/money_provider.py"])``.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Any

from flexmap.declarative import converter_fallback


async def _cents_to_decimal(value: Any) -> Decimal:
    return (Decimal(value) / 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)


async def _decimal_to_cents(value: Any) -> int:
    return int((Decimal(value) * 100).to_integral_value(rounding=ROUND_HALF_EVEN))


class MoneyProvider:
    """Convert integer cents to decimal amounts and back."""

    name = "money"

    def get_converters(self) -> Iterable[tuple[type, type, Any]]:
        return ((int, Decimal, _cents_to_decimal), (Decimal, int, _decimal_to_cents))


@converter_fallback(float, Decimal)
def float_to_decimal(value: float) -> Decimal:
    """Picked up by ``scan_converter_fallbacks`` when this module is scanned."""
    return Decimal(str(value))


PROVIDER = MoneyProvider()
