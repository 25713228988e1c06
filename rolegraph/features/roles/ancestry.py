"""
Ancestor resolution over the role contains relation.

A role R is an ancestor of T when T is reachable from R by following
``roles`` edges. Only roles of T's owner are considered.
"""
from typing import Dict, List, Set

from rolegraph.features.roles.identity import parse_id_no_check
from rolegraph.features.roles.models import Role
from rolegraph.features.roles.store import RoleStore


class _ContainsSearch:
    """
    Depth-first "does this role reach the target" search for one query.

    Roles on a cycle reach each other, so they share one answer. The
    search groups them into strongly connected components (Tarjan) and
    settles a whole component in ``memo`` when its root finishes: it
    contains the target if any member lists the target or a role already
    settled True. Each role is expanded at most once per query.

    Edges into the target are not followed, so a cycle through the target
    does not merge the target's component with its ancestors.
    """

    def __init__(self, target: str, role_map: Dict[str, Role]):
        self.target = target
        self.role_map = role_map
        self.memo: Dict[str, bool] = {}
        self.index: Dict[str, int] = {}
        self.low: Dict[str, int] = {}
        self.hit: Dict[str, bool] = {}
        self.stack: List[str] = []
        self.on_stack: Set[str] = set()

    def contains(self, role_id: str) -> bool:
        if role_id not in self.memo:
            self._visit(role_id)
        return self.memo[role_id]

    def _visit(self, role_id: str) -> None:
        self.index[role_id] = self.low[role_id] = len(self.index)
        self.stack.append(role_id)
        self.on_stack.add(role_id)
        hit = False

        for sub_role_id in self.role_map[role_id].roles:
            if sub_role_id == self.target:
                hit = True
            elif sub_role_id not in self.role_map:
                continue
            elif sub_role_id in self.memo:
                hit = hit or self.memo[sub_role_id]
            elif sub_role_id not in self.index:
                self._visit(sub_role_id)
                self.low[role_id] = min(self.low[role_id], self.low[sub_role_id])
                # Settled when its component closed below this role
                hit = hit or self.memo.get(sub_role_id, False)
            elif sub_role_id in self.on_stack:
                self.low[role_id] = min(self.low[role_id], self.index[sub_role_id])

        self.hit[role_id] = hit
        if self.low[role_id] != self.index[role_id]:
            return

        component = []
        while True:
            member = self.stack.pop()
            self.on_stack.discard(member)
            component.append(member)
            if member == role_id:
                break
        result = any(self.hit[member] for member in component)
        for member in component:
            self.memo[member] = result


def find_ancestors(role_id: str, roles: List[Role]) -> List[Role]:
    """
    Roles in ``roles`` that transitively contain ``role_id``, in input order.

    Cycles, including self references, terminate. A role that lists
    ``role_id`` directly is an ancestor, so a self-referencing target is its
    own ancestor.
    """
    role_map = {role.get_id(): role for role in roles}
    search = _ContainsSearch(role_id, role_map)
    return [role for role in roles if search.contains(role.get_id())]


async def get_ancestor_roles(role_id: str, store: RoleStore) -> List[Role]:
    """Ancestors of ``role_id`` among the roles of its owner, in store order."""
    owner, _ = parse_id_no_check(role_id)
    return find_ancestors(role_id, await store.find(owner))
