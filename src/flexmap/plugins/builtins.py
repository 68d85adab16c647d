"""Built-in converter provider for common scalar conversions."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from flexmap.types import ConverterTriple


async def _bool_to_text(value: Any) -> str:
    return "True" if value else "False"


async def _text_to_bool(value: Any) -> bool:
    # Unparsable text maps to False.
    return str(value).strip().lower() == "true"


async def _to_text(value: Any) -> str:
    return str(value)


async def _text_to_int(value: Any) -> int:
    return int(str(value).strip())


async def _text_to_float(value: Any) -> float:
    return float(str(value).strip())


async def _text_to_uuid(value: Any) -> UUID:
    return UUID(str(value).strip())


async def _text_to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid decimal literal: {value!r}") from exc


async def _isoformat(value: Any) -> str:
    return value.isoformat()


async def _text_to_datetime(value: Any) -> datetime:
    return datetime.fromisoformat(str(value).strip())


async def _text_to_date(value: Any) -> date:
    return date.fromisoformat(str(value).strip())


class BuiltinConverterProvider:
    """Offer async fallback converters between scalars and their text form.

    Notes
    -----
    ``bool`` renders as ``"True"``/``"False"``; text parses to ``True`` only
    when it reads ``"true"`` in any case, anything else gives ``False``.
    Dates and datetimes use ISO 8601.
    """

    name = "builtin"

    def get_converters(self) -> Iterable[ConverterTriple]:
        """Return the ``(source, destination, converter)`` triples."""
        return (
            (bool, str, _bool_to_text),
            (str, bool, _text_to_bool),
            (int, str, _to_text),
            (str, int, _text_to_int),
            (float, str, _to_text),
            (str, float, _text_to_float),
            (UUID, str, _to_text),
            (str, UUID, _text_to_uuid),
            (Decimal, str, _to_text),
            (str, Decimal, _text_to_decimal),
            (datetime, str, _isoformat),
            (str, datetime, _text_to_datetime),
            (date, str, _isoformat),
            (str, date, _text_to_date),
        )
