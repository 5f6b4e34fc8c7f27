"""
db/base.py

Declarative base and shared mixins for the CRM tables the analytics engine reads.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Project-wide declarative base.
    Leads, deals and targets all register on this metadata.
    """

    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    """
    Adds created_at / updated_at to a model.

    created_at doubles as the event timestamp for period-bounded aggregation
    (a lead or deal "happened" when it was created).
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )


def as_utc(value: datetime) -> datetime:
    """
    Return *value* as a timezone-aware UTC datetime.

    Some drivers (SQLite in particular) hand timestamps back naive even for
    ``DateTime(timezone=True)`` columns; those are treated as UTC.
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
