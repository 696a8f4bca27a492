"""Brand storage layer.

This package persists the brand snapshot in one on-disk bucket.
It owns the stored value encoding shared by readers and writers.
"""
