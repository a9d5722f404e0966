"""State/store layer.

This package is the single source of truth for how converted readings are
merged into the latest-known snapshot, and for how refresh errors are
classified.
"""
