from __future__ import annotations

import pytest

from conftest import make_permission, make_role
from rolegraph.core.errors import StoreError
from rolegraph.features.policies.backend import build_policies
from rolegraph.features.policies.models import GROUPING, POLICY


async def rule_values(backend, permission_id: str, ptype: str) -> set[tuple]:
    return {rule.values() for rule in await backend.get_rules(permission_id, ptype)}


def test_build_policies() -> None:
    permission = make_permission(
        "acme/edit",
        roles=["acme/editor"],
        users=["acme/alice"],
        resources=["docs", "reports"],
        actions=["read", "write"],
        effect="Deny",
    )

    rules = build_policies(permission)

    assert len(rules) == 8
    assert ("acme/alice", "docs", "write", "Deny") in rules
    assert ("acme/editor", "reports", "read", "Deny") in rules


@pytest.mark.asyncio
async def test_grouping_walks_sub_roles(policy_backend, add_roles, add_permissions) -> None:
    await add_roles(
        make_role("acme/admin", roles=["acme/editor"], users=["acme/root"], domains=["eu", "us"]),
        make_role("acme/editor", roles=["acme/admin"], users=["acme/alice"]),
    )
    permission = make_permission("acme/manage", roles=["acme/admin"])
    await add_permissions(permission)

    await policy_backend.add_grouping_policies(permission)

    assert await rule_values(policy_backend, "acme/manage", GROUPING) == {
        ("acme/root", "acme/admin", "eu", ""),
        ("acme/root", "acme/admin", "us", ""),
        ("acme/editor", "acme/admin", "eu", ""),
        ("acme/editor", "acme/admin", "us", ""),
        ("acme/alice", "acme/editor", "", ""),
        ("acme/admin", "acme/editor", "", ""),
    }


@pytest.mark.asyncio
async def test_add_and_remove_are_idempotent(policy_backend, add_roles, add_permissions) -> None:
    await add_roles(make_role("acme/viewer", users=["acme/bob"]))
    permission = make_permission("acme/read", roles=["acme/viewer"])
    await add_permissions(permission)

    await policy_backend.add_policies(permission)
    await policy_backend.add_policies(permission)
    await policy_backend.add_grouping_policies(permission)
    await policy_backend.add_grouping_policies(permission)

    assert len(await policy_backend.get_rules("acme/read", POLICY)) == 1
    assert len(await policy_backend.get_rules("acme/read", GROUPING)) == 1

    await policy_backend.remove_policies(permission)
    await policy_backend.remove_policies(permission)

    assert await policy_backend.get_rules("acme/read", POLICY) == []
    assert len(await policy_backend.get_rules("acme/read", GROUPING)) == 1

    await policy_backend.remove_grouping_policies(permission)
    assert await policy_backend.get_rules("acme/read") == []


@pytest.mark.asyncio
async def test_update_rebuilds_tuples_from_new_state(service, policy_backend, add_roles, add_permissions) -> None:
    await add_roles(
        make_role("acme/viewer", users=["acme/bob"]),
        make_role("acme/editor", roles=["acme/viewer"]),
    )
    read = make_permission("acme/read", roles=["acme/viewer"])
    write = make_permission("acme/write", roles=["acme/editor"])
    await add_permissions(read, write)
    for permission in (read, write):
        await policy_backend.add_grouping_policies(permission)
        await policy_backend.add_policies(permission)

    assert await service.update_role("acme/viewer", make_role("acme/viewer", users=["acme/carol"]))

    assert await rule_values(policy_backend, "acme/read", GROUPING) == {("acme/carol", "acme/viewer", "", "")}
    assert await rule_values(policy_backend, "acme/write", GROUPING) == {
        ("acme/viewer", "acme/editor", "", ""),
        ("acme/carol", "acme/viewer", "", ""),
    }
    assert await rule_values(policy_backend, "acme/read", POLICY) == {("acme/viewer", "documents", "read", "Allow")}


@pytest.mark.asyncio
async def test_rename_moves_tuples_to_new_identifier(service, policy_backend, add_roles, add_permissions) -> None:
    await add_roles(make_role("acme/r1", users=["acme/bob"]))
    permission = make_permission("acme/perm1", roles=["acme/r1"])
    await add_permissions(permission)
    await policy_backend.add_grouping_policies(permission)
    await policy_backend.add_policies(permission)

    assert await service.update_role("acme/r1", make_role("acme/r2", users=["acme/bob"]))

    assert await rule_values(policy_backend, "acme/perm1", GROUPING) == {("acme/bob", "acme/r2", "", "")}
    assert await rule_values(policy_backend, "acme/perm1", POLICY) == {("acme/r2", "documents", "read", "Allow")}


@pytest.mark.asyncio
async def test_failed_rename_leaves_tuples_in_place(
    service, policy_backend, add_roles, add_permissions, role_store, permission_store, monkeypatch
) -> None:
    await add_roles(make_role("acme/r1", users=["acme/bob"]))
    permission = make_permission("acme/perm1", roles=["acme/r1"])
    await add_permissions(permission)
    await policy_backend.add_grouping_policies(permission)
    await policy_backend.add_policies(permission)

    async def broken_update(*args, **kwargs):
        raise StoreError("disk full")

    monkeypatch.setattr(permission_store, "update_permission", broken_update)

    assert await service.update_role("acme/r1", make_role("acme/r2", users=["acme/bob"])) is False

    assert await rule_values(policy_backend, "acme/perm1", GROUPING) == {("acme/bob", "acme/r1", "", "")}
    assert await rule_values(policy_backend, "acme/perm1", POLICY) == {("acme/r1", "documents", "read", "Allow")}
    assert await role_store.get("acme", "r1") is not None
    assert await role_store.get("acme", "r2") is None
