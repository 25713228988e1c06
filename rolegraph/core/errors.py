"""
Errors raised by the role engine.

Missing roles and permissions are reported as ``False``/``None`` return
values, not as exceptions. Only genuine store faults raise.
"""


class StoreError(Exception):
    """I/O or constraint failure in the role, permission or policy store."""


class CascadeFailure(Exception):
    """The rename cascade transaction could not be committed."""

    def __init__(self, old_name: str, new_name: str):
        super().__init__(f"rename cascade {old_name!r} -> {new_name!r} rolled back")
        self.old_name = old_name
        self.new_name = new_name
