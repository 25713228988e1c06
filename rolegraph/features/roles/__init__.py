"""
Role hierarchy feature module.

Owner-scoped roles that contain users and other roles, the ancestor
resolver over the contains relation, and the coordinator that keeps the
policy backend in step with role mutations.
"""
