"""
Permission persistence used by the role engine.
"""
import json
from typing import List, Optional
from sqlalchemy import select, insert, update, cast, String
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rolegraph.core.errors import StoreError
from rolegraph.features.permissions.models import Permission
from rolegraph.features.roles.identity import parse_id
from rolegraph.utils import escape_like, get_logger


log = get_logger(__name__)


class PermissionStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _scalars(self, stmt) -> List[Permission]:
        stmt = stmt.order_by(Permission.created_at.desc(), Permission.name.asc())
        try:
            result = await self.db.execute(stmt.execution_options(populate_existing=True))
        except SQLAlchemyError as e:
            raise StoreError(f"permission query failed: {e}") from e
        return list(result.scalars().all())

    async def _write(self, stmt, commit: bool) -> int:
        try:
            result = await self.db.execute(stmt)
            if commit:
                await self.db.commit()
        except SQLAlchemyError as e:
            if commit:
                await self.db.rollback()
            raise StoreError(f"permission write failed: {e}") from e
        return result.rowcount

    async def find_all(self) -> List[Permission]:
        return await self._scalars(select(Permission))

    async def get(self, permission_id: str) -> Optional[Permission]:
        owner, name = parse_id(permission_id)
        permissions = await self._scalars(
            select(Permission).where(Permission.owner == owner, Permission.name == name)
        )
        return permissions[0] if permissions else None

    async def get_permissions_by_role(self, role_id: str) -> List[Permission]:
        """Permissions whose ``roles`` list contains ``role_id``."""
        pattern = "%" + escape_like(json.dumps(role_id)) + "%"
        stmt = select(Permission).where(cast(Permission.roles, String).like(pattern, escape="\\"))
        permissions = await self._scalars(stmt)
        return [permission for permission in permissions if role_id in permission.roles]

    async def insert(self, permission: Permission, commit: bool = True) -> bool:
        affected = await self._write(insert(Permission).values(**permission.field_values()), commit)
        log.info(f"Inserted permission {permission.get_id()}")
        return affected != 0

    async def update_permission(self, permission_id: str, permission: Permission, commit: bool = True) -> bool:
        owner, name = parse_id(permission_id)
        stmt = (
            update(Permission)
            .where(Permission.owner == owner, Permission.name == name)
            .values(**permission.field_values())
            .execution_options(synchronize_session=False)
        )
        return await self._write(stmt, commit) != 0
