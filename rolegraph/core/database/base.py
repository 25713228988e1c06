"""
SQLAlchemy declarative base and common model utilities.

All SQLAlchemy models should inherit from Base.
"""
from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Usage:
        from rolegraph.core.database.base import Base

        class Role(Base):
            __tablename__ = "roles"

            owner: Mapped[str] = mapped_column(String(100), primary_key=True)
            name: Mapped[str] = mapped_column(String(100), primary_key=True)
    """
    pass


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.

    Usage:
        class Role(Base, TimestampMixin):
            __tablename__ = "roles"
            ...
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class OwnedMixin:
    """
    Mixin for records addressed by an ``owner/name`` composite key.

    Gives every owner-scoped entity the same identifier shape so stores
    and the policy backend can address them without knowing the model.
    """
    # Columns written by a full-record update
    UPDATABLE_FIELDS = ("owner", "name")

    def get_id(self) -> str:
        return f"{self.owner}/{self.name}"

    def field_values(self) -> dict:
        values = {}
        for field in self.UPDATABLE_FIELDS:
            value = getattr(self, field)
            values[field] = list(value) if isinstance(value, list) else value
        return values

    def replace(self, **changes):
        """Return a new transient record with ``changes`` applied."""
        values = self.field_values()
        values.update(changes)
        clone = type(self)(**values)
        for attr in ("created_at", "updated_at"):
            if hasattr(self, attr):
                setattr(clone, attr, getattr(self, attr))
        return clone
