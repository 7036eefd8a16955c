# sportcenter/models/base_enum.py
"""
Safe enum helpers for SQLAlchemy.

SQLAlchemy's Enum type persists member NAMES by default; these helpers make
columns persist member VALUES so raw SQL, seeds and ORM queries agree.

Usage:
    from sportcenter.models.base_enum import create_safe_enum

    class MyModel(Base):
        status: Mapped[MyStatus] = mapped_column(
            create_safe_enum(MyStatus, "my_status_enum"),
            nullable=False,
            default=MyStatus.ACTIVE,
        )
"""

from enum import Enum
from typing import Sequence, Type

from sqlalchemy import Enum as SAEnum


def create_safe_enum(
    enum_class: Type[Enum],
    name: str,
    *,
    native_enum: bool = False,
    validate_strings: bool = True,
) -> SAEnum:
    """
    Create a SQLAlchemy Enum that stores enum values (not names).

    Non-native (VARCHAR + CHECK) by default so the same schema works on
    SQLite and PostgreSQL without migrations creating types.
    """
    return SAEnum(
        enum_class,
        name=name,
        native_enum=native_enum,
        validate_strings=validate_strings,
        values_callable=_get_enum_values,
        length=32,
    )


def _get_enum_values(enum_class: Type[Enum]) -> Sequence[str]:
    return [member.value for member in enum_class]
