"""Adapters: storage implementations for the entity time machine.

Contains:
- repositories.py: in-memory user store
"""

__all__: list[str] = []
