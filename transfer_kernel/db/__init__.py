"""Database layer - engine, base classes and column types."""

from transfer_kernel.db.base import UUID, Base, UTCDateTime, UUIDString
from transfer_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from transfer_kernel.db.types import Currency, Money

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "UTCDateTime",
    "UUIDString",
    "UUID",
    "Money",
    "Currency",
]
