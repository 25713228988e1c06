"""
Role persistence.

Thin async wrapper around the ``roles`` table. Every SQLAlchemy failure is
re-raised as StoreError. Write methods commit by default; pass
``commit=False`` to batch several writes into the caller's transaction.
"""
import json
from typing import List, Optional, Sequence
from sqlalchemy import select, insert, update, delete, func, cast, String
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rolegraph.core.errors import StoreError
from rolegraph.features.roles.models import Role
from rolegraph.utils import escape_like, get_logger


log = get_logger(__name__)


def _ordered(stmt):
    # Store iteration order
    return stmt.order_by(Role.created_at.desc(), Role.name.asc()).execution_options(populate_existing=True)


class RoleStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _scalars(self, stmt) -> List[Role]:
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"role query failed: {e}") from e
        return list(result.scalars().all())

    async def _write(self, stmt, commit: bool) -> int:
        try:
            result = await self.db.execute(stmt)
            if commit:
                await self.db.commit()
        except SQLAlchemyError as e:
            if commit:
                await self.db.rollback()
            raise StoreError(f"role write failed: {e}") from e
        return result.rowcount

    async def find(self, owner: str) -> List[Role]:
        """All roles of one owner, in store iteration order."""
        return await self._scalars(_ordered(select(Role).where(Role.owner == owner)))

    async def find_all(self) -> List[Role]:
        return await self._scalars(_ordered(select(Role)))

    async def find_by_owners(self, owners: Sequence[str]) -> List[Role]:
        return await self._scalars(_ordered(select(Role).where(Role.owner.in_(list(owners)))))

    async def find_by_name_prefix(self, owner: str, prefix: str) -> List[Role]:
        stmt = select(Role).where(
            Role.owner == owner,
            Role.name.like(escape_like(prefix) + "%", escape="\\"),
        )
        return await self._scalars(_ordered(stmt))

    async def find_by_user(self, user_id: str) -> List[Role]:
        """Roles whose ``users`` list contains ``user_id``."""
        pattern = "%" + escape_like(json.dumps(user_id)) + "%"
        stmt = select(Role).where(cast(Role.users, String).like(pattern, escape="\\"))
        roles = await self._scalars(_ordered(stmt))
        # LIKE is only a prefilter on the serialized list
        return [role for role in roles if user_id in role.users]

    async def count(self, owner: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(Role)
        if owner:
            stmt = stmt.where(Role.owner == owner)
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"role count failed: {e}") from e
        return result.scalar_one()

    async def count_by_owners(self, owners: Sequence[str]) -> int:
        stmt = select(func.count()).select_from(Role).where(Role.owner.in_(list(owners)))
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"role count failed: {e}") from e
        return result.scalar_one()

    async def get(self, owner: str, name: str) -> Optional[Role]:
        if not owner or not name:
            return None
        stmt = (
            select(Role)
            .where(Role.owner == owner, Role.name == name)
            .execution_options(populate_existing=True)
        )
        roles = await self._scalars(stmt)
        return roles[0] if roles else None

    async def insert(self, role: Role, commit: bool = True) -> bool:
        affected = await self._write(insert(Role).values(**role.field_values()), commit)
        log.info(f"Inserted role {role.get_id()}")
        return affected != 0

    async def update_all_fields(self, owner: str, name: str, role: Role, commit: bool = True) -> int:
        """Replace every updatable column of ``owner/name`` with ``role``'s values."""
        stmt = (
            update(Role)
            .where(Role.owner == owner, Role.name == name)
            .values(**role.field_values())
            .execution_options(synchronize_session=False)
        )
        return await self._write(stmt, commit)

    async def delete_by_key(self, owner: str, name: str, commit: bool = True) -> int:
        stmt = (
            delete(Role)
            .where(Role.owner == owner, Role.name == name)
            .execution_options(synchronize_session=False)
        )
        return await self._write(stmt, commit)

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"commit failed: {e}") from e

    async def rollback(self) -> None:
        await self.db.rollback()
