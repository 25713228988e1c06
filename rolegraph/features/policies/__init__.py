"""
Policy backend feature module.

Stores the authorization tuples derived from permissions and the role
hierarchy: plain policy tuples for direct grants and grouping tuples for
role membership and inheritance.
"""
