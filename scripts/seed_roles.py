"""
Seed script to populate a default role hierarchy.

Run this script after database initialization to create:
- Default roles for one owner, nested through their ``roles`` lists
- Default permissions referencing those roles
- The policy tuples derived from them

Usage:
    python -m scripts.seed_roles [owner]
"""
import asyncio
import sys
from sqlalchemy.ext.asyncio import AsyncSession

from rolegraph.core.database.engine import get_db, init_db
from rolegraph.features.permissions.models import Permission
from rolegraph.features.permissions.store import PermissionStore
from rolegraph.features.policies.backend import SqlPolicyBackend
from rolegraph.features.roles.identity import format_id
from rolegraph.features.roles.models import Role
from rolegraph.features.roles.store import RoleStore
from rolegraph.utils import get_logger


log = get_logger(__name__)


DEFAULT_OWNER = "built-in"

# role name -> (display name, sub-role names)
DEFAULT_ROLES = {
    "admin": ("Administrator", ["manager", "auditor"]),
    "manager": ("Manager", ["editor"]),
    "editor": ("Editor", ["viewer"]),
    "auditor": ("Auditor", ["viewer"]),
    "viewer": ("Viewer", []),
}

# permission name -> (role names, resources, actions)
DEFAULT_PERMISSIONS = {
    "read_all": (["viewer"], ["*"], ["read"]),
    "write_content": (["editor"], ["documents", "reports"], ["write"]),
    "manage_users": (["manager"], ["users"], ["read", "write", "admin"]),
    "read_audit": (["auditor", "admin"], ["audit"], ["read"]),
}


async def seed_roles(db: AsyncSession, owner: str) -> None:
    """Create the default roles for ``owner``, skipping existing ones."""
    log.info("Creating default roles...")
    roles = RoleStore(db)

    for name, (display_name, sub_roles) in DEFAULT_ROLES.items():
        if await roles.get(owner, name) is not None:
            log.debug(f"Role '{name}' already exists, skipping")
            continue

        await roles.insert(Role(
            owner=owner,
            name=name,
            display_name=display_name,
            roles=[format_id(owner, sub_role) for sub_role in sub_roles],
        ))
        log.info(f"Created role '{name}' containing {sub_roles}")


async def seed_permissions(db: AsyncSession, owner: str) -> None:
    """Create the default permissions for ``owner`` and derive their policy tuples."""
    log.info("Creating default permissions...")
    roles = RoleStore(db)
    permissions = PermissionStore(db)
    policies = SqlPolicyBackend(db, roles)

    for name, (role_names, resources, actions) in DEFAULT_PERMISSIONS.items():
        permission_id = format_id(owner, name)
        if await permissions.get(permission_id) is not None:
            log.debug(f"Permission '{name}' already exists, skipping")
            continue

        permission = Permission(
            owner=owner,
            name=name,
            roles=[format_id(owner, role_name) for role_name in role_names],
            resources=resources,
            actions=actions,
        )
        await permissions.insert(permission)
        await policies.add_grouping_policies(permission)
        await policies.add_policies(permission)
        log.info(f"Created permission: {name}")


async def main():
    """Main function to seed roles and permissions."""
    owner = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_OWNER
    log.info(f"Starting role seeding for owner '{owner}'...")

    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()

    # Get database session
    async for db in get_db():
        try:
            await seed_roles(db, owner)
            await seed_permissions(db, owner)
            log.info("Role seeding completed successfully!")
        except Exception as e:
            log.error(f"Error seeding roles: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
