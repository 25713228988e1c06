"""
Derived policy tuples.

Rows here have no independent source of truth: each one is derived from a
permission (and, for grouping tuples, from the roles that permission
references) and is tagged with that permission's identifier.
"""
from sqlalchemy import String, Index
from sqlalchemy.orm import Mapped, mapped_column
from ulid import ULID

from rolegraph.core.database.base import Base


POLICY = "p"
GROUPING = "g"


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())


class PolicyRule(Base):
    """
    One policy tuple.

    - ptype="p": (subject, resource, action, effect)
    - ptype="g": (member, role, domain)
    """
    __tablename__ = "policy_rules"
    __table_args__ = (
        Index("ix_policy_rules_permission_ptype", "permission_id", "ptype"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    ptype: Mapped[str] = mapped_column(String(8), nullable=False)
    v0: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    v1: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    v2: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    v3: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # owner/name of the permission this tuple was derived from
    permission_id: Mapped[str] = mapped_column(String(201), nullable=False)

    def values(self) -> tuple:
        return (self.v0, self.v1, self.v2, self.v3)

    def __repr__(self) -> str:
        return f"<PolicyRule({self.ptype}, {self.v0}, {self.v1}, {self.v2}, {self.v3}, permission={self.permission_id})>"
