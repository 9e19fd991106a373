"""
SQLAlchemy declarative base and mixins for the fee schedule reference tables.

The reference tables are bulk-loaded from CMS releases and read by the
benchmark stores; rows are replaced per release rather than edited.
"""

from datetime import datetime, timezone
from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for the reference data models."""

    pass


class TimestampMixin:
    """Load bookkeeping: when a release row was inserted and last reloaded."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )


class IDMixin:
    """Surrogate key; lookups go through the natural-key indexes instead."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
