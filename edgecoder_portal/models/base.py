"""Declarative base classes for ORM models."""

from __future__ import annotations

from sqlalchemy import BigInteger, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base declarative class that centralises metadata."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UserOwnedMixin:
    """Mixin that adds the owning `user_id` column to child tables."""

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)


class CreatedAtMixin:
    """Mixin that adds the epoch-millisecond `created_at_ms` column."""

    created_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
