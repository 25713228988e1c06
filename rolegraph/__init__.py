"""
Role hierarchy and permission-policy propagation engine.
"""
