"""Shared fixtures: an in-memory database per test and the role engine wired onto it."""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT", "100000/minute")

from typing import Iterable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rolegraph.core.database.engine import init_db
from rolegraph.features.permissions.models import Permission
from rolegraph.features.permissions.store import PermissionStore
from rolegraph.features.policies.backend import SqlPolicyBackend
from rolegraph.features.roles.models import Role
from rolegraph.features.roles.service import RoleService
from rolegraph.features.roles.store import RoleStore


class RecordingPolicyBackend:
    """Policy backend fake that only records the calls made to it."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def count(self, operation: str, permission_id: str) -> int:
        return self.calls.count((operation, permission_id))

    async def add_grouping_policies(self, permission: Permission) -> None:
        self.calls.append(("add_grouping_policies", permission.get_id()))

    async def remove_grouping_policies(self, permission: Permission) -> None:
        self.calls.append(("remove_grouping_policies", permission.get_id()))

    async def add_policies(self, permission: Permission) -> None:
        self.calls.append(("add_policies", permission.get_id()))

    async def remove_policies(self, permission: Permission) -> None:
        self.calls.append(("remove_policies", permission.get_id()))


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def role_store(db: AsyncSession) -> RoleStore:
    return RoleStore(db)


@pytest.fixture
def permission_store(db: AsyncSession) -> PermissionStore:
    return PermissionStore(db)


@pytest.fixture
def recorder() -> RecordingPolicyBackend:
    return RecordingPolicyBackend()


@pytest.fixture
def recording_service(role_store, permission_store, recorder) -> RoleService:
    return RoleService(role_store, permission_store, recorder)


@pytest.fixture
def policy_backend(db: AsyncSession, role_store: RoleStore) -> SqlPolicyBackend:
    return SqlPolicyBackend(db, role_store)


@pytest.fixture
def service(role_store, permission_store, policy_backend) -> RoleService:
    return RoleService(role_store, permission_store, policy_backend)


def make_role(role_id: str, roles: Iterable[str] = (), users: Iterable[str] = (), **kwargs) -> Role:
    owner, name = role_id.split("/")
    return Role(owner=owner, name=name, roles=list(roles), users=list(users), **kwargs)


def make_permission(permission_id: str, roles: Iterable[str] = (), **kwargs) -> Permission:
    owner, name = permission_id.split("/")
    kwargs.setdefault("resources", ["documents"])
    kwargs.setdefault("actions", ["read"])
    return Permission(owner=owner, name=name, roles=list(roles), **kwargs)


@pytest_asyncio.fixture
async def add_roles(role_store: RoleStore):
    async def _add(*roles: Role) -> None:
        for role in roles:
            await role_store.insert(role)
    return _add


@pytest_asyncio.fixture
async def add_permissions(permission_store: PermissionStore):
    async def _add(*permissions: Permission) -> None:
        for permission in permissions:
            await permission_store.insert(permission)
    return _add
