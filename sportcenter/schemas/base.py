"""
Shared field types for API schemas.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic_core import core_schema


def _to_money(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError("Amount must be finite")
    return amount


class Money(Decimal):
    """
    Credit amount held as Decimal internally and rendered as a JSON number.

    Accepts ints, floats, numeric strings and Decimals.
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        accepted = core_schema.union_schema(
            [
                core_schema.is_instance_schema(Decimal),
                core_schema.int_schema(),
                core_schema.float_schema(),
                core_schema.str_schema(),
            ]
        )
        return core_schema.no_info_after_validator_function(
            _to_money,
            accepted,
            serialization=core_schema.plain_serializer_function_ser_schema(
                float, return_schema=core_schema.float_schema()
            ),
        )
