"""
Policy backend.

The backend holds the authorization tuples derived from permissions:

- plain policy tuples ("p"): one per (subject, resource, action) of a
  permission, where subjects are the permission's users and roles;
- grouping tuples ("g"): role membership and inheritance facts for every
  role a permission references, walked down through its sub-roles.

All operations are keyed by the permission and are idempotent: adding
tuples that already exist or removing tuples that are gone is a no-op.
"""
from typing import List, Optional, Protocol, Set, Tuple
from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rolegraph.core.errors import StoreError
from rolegraph.features.permissions.models import Permission
from rolegraph.features.policies.models import GROUPING, POLICY, PolicyRule
from rolegraph.features.roles.identity import parse_id_no_check
from rolegraph.features.roles.store import RoleStore
from rolegraph.utils import get_logger


log = get_logger(__name__)

Rule = Tuple[str, str, str, str]


class PolicyBackend(Protocol):
    """Operations the role engine needs from a policy backend."""

    async def add_grouping_policies(self, permission: Permission) -> None: ...

    async def remove_grouping_policies(self, permission: Permission) -> None: ...

    async def add_policies(self, permission: Permission) -> None: ...

    async def remove_policies(self, permission: Permission) -> None: ...


def build_policies(permission: Permission) -> List[Rule]:
    """Plain policy tuples granted directly by ``permission``."""
    rules: List[Rule] = []
    for subject in list(permission.users) + list(permission.roles):
        for resource in permission.resources:
            for action in permission.actions:
                rule = (subject, resource, action, permission.effect)
                if rule not in rules:
                    rules.append(rule)
    return rules


async def build_grouping_policies(permission: Permission, roles: RoleStore) -> List[Rule]:
    """
    Grouping tuples for every role ``permission`` references.

    Each referenced role is walked down through its sub-roles. A role
    reached twice (shared sub-role or cycle) is expanded only once.
    """
    rules: List[Rule] = []
    expanded: Set[str] = set()

    async def expand(role_id: str) -> None:
        if role_id in expanded:
            return
        expanded.add(role_id)

        role = await roles.get(*parse_id_no_check(role_id))
        if role is None:
            return

        domains = role.domains or [""]
        for domain in domains:
            for member in list(role.users) + list(role.roles):
                rule = (member, role_id, domain, "")
                if rule not in rules:
                    rules.append(rule)

        for sub_role_id in role.roles:
            await expand(sub_role_id)

    for role_id in permission.roles:
        await expand(role_id)
    return rules


class SqlPolicyBackend:
    """
    Policy backend storing tuples in the ``policy_rules`` table.

    Uses the same session as the stores; each add/remove call commits on
    its own.
    """

    def __init__(self, db: AsyncSession, roles: RoleStore):
        self.db = db
        self.roles = roles

    async def get_rules(self, permission_id: Optional[str] = None, ptype: Optional[str] = None) -> List[PolicyRule]:
        stmt = select(PolicyRule)
        if permission_id is not None:
            stmt = stmt.where(PolicyRule.permission_id == permission_id)
        if ptype is not None:
            stmt = stmt.where(PolicyRule.ptype == ptype)
        stmt = stmt.order_by(PolicyRule.id)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"policy query failed: {e}") from e
        return list(result.scalars().all())

    async def _add(self, permission: Permission, ptype: str, rules: List[Rule]) -> None:
        permission_id = permission.get_id()
        existing = {rule.values() for rule in await self.get_rules(permission_id, ptype)}
        missing = [rule for rule in rules if rule not in existing]
        if not missing:
            return

        try:
            for v0, v1, v2, v3 in missing:
                self.db.add(PolicyRule(ptype=ptype, v0=v0, v1=v1, v2=v2, v3=v3, permission_id=permission_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"policy insert failed: {e}") from e
        log.debug(f"Added {len(missing)} {ptype!r} tuples for permission {permission_id}")

    async def _remove(self, permission: Permission, ptype: str) -> None:
        permission_id = permission.get_id()
        stmt = delete(PolicyRule).where(
            PolicyRule.permission_id == permission_id,
            PolicyRule.ptype == ptype,
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"policy delete failed: {e}") from e
        log.debug(f"Removed {result.rowcount} {ptype!r} tuples for permission {permission_id}")

    async def add_grouping_policies(self, permission: Permission) -> None:
        await self._add(permission, GROUPING, await build_grouping_policies(permission, self.roles))

    async def remove_grouping_policies(self, permission: Permission) -> None:
        await self._remove(permission, GROUPING)

    async def add_policies(self, permission: Permission) -> None:
        await self._add(permission, POLICY, build_policies(permission))

    async def remove_policies(self, permission: Permission) -> None:
        await self._remove(permission, POLICY)
