"""Database layer - engine, base classes and column types."""

from lekka_kernel.db.base import UUID, Base, TimestampedBase, UTCDateTime, UUIDString
from lekka_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from lekka_kernel.db.types import GLOBAL_TENANT, MinorUnits, PayloadHash, TenantId

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UTCDateTime",
    "UUIDString",
    "UUID",
    "MinorUnits",
    "PayloadHash",
    "TenantId",
    "GLOBAL_TENANT",
]
