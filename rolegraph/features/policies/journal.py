"""
Journal of policy tuple changes made while resynchronising a role.

The coordinator records every add/remove it issues against the policy
backend. If a later step fails, ``compensate`` replays the inverse of the
recorded steps, newest first, so the backend returns to its prior state.
The journal is in-memory and covers one coordinator run; entries hold
transient copies of the permissions so they outlive a session rollback.
"""
from dataclasses import dataclass, field
from typing import List

from rolegraph.features.permissions.models import Permission
from rolegraph.features.policies.backend import PolicyBackend
from rolegraph.utils import get_logger


log = get_logger(__name__)

REMOVE_GROUPING = "remove_grouping_policies"
REMOVE_POLICIES = "remove_policies"
ADD_GROUPING = "add_grouping_policies"
ADD_POLICIES = "add_policies"

_INVERSE = {
    REMOVE_GROUPING: ADD_GROUPING,
    REMOVE_POLICIES: ADD_POLICIES,
    ADD_GROUPING: REMOVE_GROUPING,
    ADD_POLICIES: REMOVE_POLICIES,
}


@dataclass
class JournalEntry:
    operation: str
    permission: Permission


@dataclass
class PolicySyncJournal:
    backend: PolicyBackend
    label: str = ""
    entries: List[JournalEntry] = field(default_factory=list)

    async def apply(self, operation: str, permission: Permission) -> None:
        """Record ``operation`` for ``permission``, then run it."""
        # Detached copy: a later rollback expires the session's instances
        self.entries.append(JournalEntry(operation, permission.replace()))
        log.debug(f"[{self.label}] {operation} {permission.get_id()}")
        await getattr(self.backend, operation)(permission)

    async def compensate(self) -> None:
        """Undo every recorded step, newest first, and clear the journal."""
        log.warning(f"[{self.label}] compensating {len(self.entries)} policy operations")
        while self.entries:
            entry = self.entries.pop()
            await getattr(self.backend, _INVERSE[entry.operation])(entry.permission)
