"""Supabase-backed persistence for users and their automation settings."""

from .client import (
    DatabaseClient,
    DatabaseError,
    SupabaseDatabaseClient,
    get_database_client,
    set_database_client,
)
from .models import UserRecord

__all__ = [
    "DatabaseClient",
    "DatabaseError",
    "SupabaseDatabaseClient",
    "UserRecord",
    "get_database_client",
    "set_database_client",
]
