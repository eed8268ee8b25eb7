"""Database layer - engine, base classes, and immutability listeners."""

from procurement_kernel.db.base import UUID, Base, ProvenanceBase, UUIDString
from procurement_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    session_scope,
)

__all__ = [
    "build_engine",
    "session_scope",
    "create_tables",
    "drop_tables",
    "Base",
    "ProvenanceBase",
    "UUIDString",
    "UUID",
]
