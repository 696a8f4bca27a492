"""Brand cache service layer.

This package exposes lookups and streams over the cached snapshot.
It drives rebuild cycles and tracks service readiness.
"""
