"""
Permission model.

A permission grants ``actions`` on ``resources`` to its users and roles.
Only ``get_id()`` and ``roles`` matter to the role engine; the remaining
columns feed the policy tuples derived by the policy backend.
"""
from typing import List
from sqlalchemy import String, JSON, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from rolegraph.core.database.base import Base, OwnedMixin, TimestampMixin


class Permission(Base, OwnedMixin, TimestampMixin):
    """
    Permission record.

    Examples:
    - acme/read_claims: roles=["acme/claims_viewer"], resources=["claims"], actions=["read"]
    - acme/deny_export: users=["acme/alice"], resources=["reports"], actions=["export"], effect="Deny"
    """
    __tablename__ = "permissions"

    owner: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), primary_key=True)

    display_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    users: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    roles: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    domains: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    resource_type: Mapped[str] = mapped_column(String(100), nullable=False, default="Application")
    resources: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    actions: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    effect: Mapped[str] = mapped_column(String(20), nullable=False, default="Allow")

    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __init__(self, **kwargs):
        for field in ("users", "roles", "domains", "resources", "actions"):
            kwargs.setdefault(field, [])
        kwargs.setdefault("display_name", "")
        kwargs.setdefault("resource_type", "Application")
        kwargs.setdefault("effect", "Allow")
        kwargs.setdefault("is_enabled", True)
        super().__init__(**kwargs)

    UPDATABLE_FIELDS = (
        "owner", "name", "display_name", "users", "roles", "domains",
        "resource_type", "resources", "actions", "effect", "is_enabled",
    )

    def __repr__(self) -> str:
        return f"<Permission(id={self.get_id()!r}, roles={self.roles}, effect={self.effect})>"
