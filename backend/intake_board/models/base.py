"""Shared SQLModel base class with query-manager access."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar

from sqlalchemy import Column
from sqlalchemy import Enum as SAEnum
from sqlmodel import SQLModel

from intake_board.db.query_manager import ManagerDescriptor


class QueryModel(SQLModel):
    """Base for table models; exposes ``Model.objects`` query helpers."""

    objects: ClassVar[ManagerDescriptor] = ManagerDescriptor()


def enum_column(
    enum_cls: type[Enum],
    *,
    nullable: bool = False,
    index: bool = False,
) -> Column:
    """Store a str-valued enum as a plain VARCHAR holding the member value."""
    return Column(
        SAEnum(
            enum_cls,
            native_enum=False,
            validate_strings=True,
            length=40,
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=nullable,
        index=index,
    )
