"""Database layer - engine, base classes, immutability and triggers."""

from inventory_kernel.db.base import UUID, Base, SoftDeleteMixin, TrackedBase, UUIDString
from inventory_kernel.db.engine import create_tables, get_engine, get_session, session_scope

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "SoftDeleteMixin",
    "UUIDString",
    "UUID",
]
