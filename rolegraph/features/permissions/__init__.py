"""
Permission records as seen by the role engine.

Permissions reference the roles they apply to; the policy backend derives
its tuples from them.
"""
