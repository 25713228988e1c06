"""
Role mutation coordinator.

Keeps the policy backend consistent with the role graph while roles are
added, updated, renamed or deleted.

Update is a full remove-then-rebuild: the tuples of every permission that
applies to the role, directly or through an ancestor, are removed, the new
role record is written, and the tuples are derived again from the new
state. Within each phase a permission is processed once, even when it is
reachable both directly and through an ancestor.
"""
from typing import List, Optional, Sequence, Set
from sqlalchemy.exc import SQLAlchemyError

from rolegraph.core.errors import CascadeFailure, StoreError
from rolegraph.features.permissions.store import PermissionStore
from rolegraph.features.policies.backend import PolicyBackend
from rolegraph.features.policies.journal import (
    ADD_GROUPING,
    ADD_POLICIES,
    REMOVE_GROUPING,
    REMOVE_POLICIES,
    PolicySyncJournal,
)
from rolegraph.features.roles.ancestry import get_ancestor_roles
from rolegraph.features.roles.identity import format_id, parse_id, parse_id_no_check
from rolegraph.features.roles.models import Role
from rolegraph.features.roles.store import RoleStore
from rolegraph.utils import get_logger


log = get_logger(__name__)


def rename_references(role_ids: Sequence[str], old_name: str, new_name: str) -> List[str]:
    """Point every ``owner/old_name`` in ``role_ids`` at ``owner/new_name``."""
    renamed = []
    for role_id in role_ids:
        owner, name = parse_id_no_check(role_id)
        renamed.append(format_id(owner, new_name) if name == old_name else role_id)
    return renamed


def get_masked_roles(roles: List[Role]) -> List[Role]:
    """Copies of ``roles`` with their user lists hidden."""
    return [role.replace(users=[]) for role in roles]


class RoleService:
    def __init__(self, roles: RoleStore, permissions: PermissionStore, policies: PolicyBackend):
        self.roles = roles
        self.permissions = permissions
        self.policies = policies

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_role(self, role_id: str) -> Optional[Role]:
        owner, name = parse_id_no_check(role_id)
        return await self.roles.get(owner, name)

    async def get_roles(self, owner: str) -> List[Role]:
        return await self.roles.find(owner)

    async def get_roles_by_owners(self, owners: Sequence[str]) -> List[Role]:
        return await self.roles.find_by_owners(owners)

    async def get_role_count(self, owner: str) -> int:
        return await self.roles.count(owner)

    async def get_role_count_by_owners(self, owners: Sequence[str]) -> int:
        return await self.roles.count_by_owners(owners)

    async def get_roles_by_user(self, user_id: str) -> List[Role]:
        return get_masked_roles(await self.roles.find_by_user(user_id))

    async def get_roles_by_name_prefix(self, owner: str, prefix: str) -> List[Role]:
        return await self.roles.find_by_name_prefix(owner, prefix)

    async def get_ancestor_roles(self, role_id: str) -> List[Role]:
        return await get_ancestor_roles(role_id, self.roles)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_role(self, role: Role) -> bool:
        return await self.roles.insert(role)

    async def _sync(self, role_id: str, adding: bool, journal: Optional[PolicySyncJournal] = None) -> None:
        """
        Add or remove the tuples of every permission that applies to ``role_id``.

        Operations go through ``journal`` when one is given so they can be
        compensated later.
        """
        grouping = ADD_GROUPING if adding else REMOVE_GROUPING
        policies = ADD_POLICIES if adding else REMOVE_POLICIES
        visited: Set[str] = set()

        async def run(operation: str, permission) -> None:
            if journal is not None:
                await journal.apply(operation, permission)
            else:
                await getattr(self.policies, operation)(permission)

        for permission in await self.permissions.get_permissions_by_role(role_id):
            await run(grouping, permission)
            await run(policies, permission)
            visited.add(permission.get_id())

        # Ancestors confer membership only, never a direct grant
        for ancestor in await self.get_ancestor_roles(role_id):
            for permission in await self.permissions.get_permissions_by_role(ancestor.get_id()):
                permission_id = permission.get_id()
                if permission_id not in visited:
                    await run(grouping, permission)
                    visited.add(permission_id)

    async def update_role(self, role_id: str, role: Role) -> bool:
        """
        Replace the role at ``role_id`` with ``role`` and resync its tuples.

        Returns False without touching any store when the role does not
        exist or when a rename targets a role that already exists, and
        False after restoring the removed tuples when the rename cascade
        fails.
        """
        owner, name = parse_id(role_id)
        if await self.roles.get(owner, name) is None:
            return False

        renaming = (role.owner, role.name) != (owner, name)
        if renaming and await self.roles.get(role.owner, role.name) is not None:
            log.warning(f"Role {role_id} not updated: {role.get_id()} already exists")
            return False

        removal = PolicySyncJournal(self.policies, label=f"update {role_id}")
        await self._sync(role_id, adding=False, journal=removal)

        if name != role.name:
            try:
                await self.rename_cascade(name, role.name)
            except CascadeFailure as e:
                log.warning(f"Role {role_id} not updated: {e}")
                await removal.compensate()
                return False

        affected = await self.roles.update_all_fields(owner, name, role)

        new_role_id = role.get_id()
        await self._sync(new_role_id, adding=True)

        log.info(f"Updated role {role_id} -> {new_role_id} (affected={affected})")
        return affected != 0

    async def rename_cascade(self, old_name: str, new_name: str) -> None:
        """
        Rewrite every role and permission reference to ``old_name``.

        Runs across all owners in one transaction. Any store failure rolls
        the whole rewrite back and raises CascadeFailure.
        """
        try:
            for role in await self.roles.find_all():
                renamed = rename_references(role.roles, old_name, new_name)
                if renamed == role.roles:
                    continue
                await self.roles.update_all_fields(role.owner, role.name, role.replace(roles=renamed), commit=False)

            for permission in await self.permissions.find_all():
                renamed = rename_references(permission.roles, old_name, new_name)
                if renamed == permission.roles:
                    continue
                await self.permissions.update_permission(
                    permission.get_id(), permission.replace(roles=renamed), commit=False
                )

            await self.roles.commit()
        except (StoreError, SQLAlchemyError) as e:
            await self.roles.rollback()
            raise CascadeFailure(old_name, new_name) from e

        log.info(f"Renamed role references {old_name!r} -> {new_name!r}")

    async def delete_role(self, role: Role) -> bool:
        """
        Delete ``role`` and scrub it from the permissions that reference it.

        Each permission is written on its own. Other roles that list the
        deleted role as a sub-role keep the reference.
        """
        role_id = role.get_id()
        for permission in await self.permissions.get_permissions_by_role(role_id):
            remaining = [r for r in permission.roles if r != role_id]
            await self.permissions.update_permission(permission.get_id(), permission.replace(roles=remaining))

        affected = await self.roles.delete_by_key(role.owner, role.name)
        log.info(f"Deleted role {role_id} (affected={affected})")
        return affected != 0
