"""
Role model for the owner-scoped role hierarchy.

A role is addressed as ``owner/name``. Its ``roles`` column lists the
sub-roles it contains: if role A contains role B, members of B inherit
the grants made to A. The contains relation is meant to be a DAG but
cycles are tolerated everywhere it is traversed.
"""
from typing import List
from sqlalchemy import String, JSON, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from rolegraph.core.database.base import Base, OwnedMixin, TimestampMixin


class Role(Base, OwnedMixin, TimestampMixin):
    """
    Role record.

    Examples: acme/admin, acme/billing_manager, built-in/auditor
    """
    __tablename__ = "roles"

    # Composite primary key
    owner: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), primary_key=True)

    display_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    # Identifier lists stored as JSON arrays
    users: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    roles: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    domains: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __init__(self, **kwargs):
        for field in ("users", "roles", "domains"):
            kwargs.setdefault(field, [])
        kwargs.setdefault("display_name", "")
        kwargs.setdefault("is_enabled", True)
        super().__init__(**kwargs)

    UPDATABLE_FIELDS = ("owner", "name", "display_name", "users", "roles", "domains", "is_enabled")

    def __repr__(self) -> str:
        return f"<Role(id={self.get_id()!r}, roles={self.roles}, enabled={self.is_enabled})>"
