"""
Database client for review automation.
Handles Google account records, their OAuth tokens and per-location settings.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from supabase import Client, create_client

from ..auth import encrypt_token
from ..automation.models import AutomationSetting
from ..config import CONFIG
from ..logger import log
from .models import UserRecord

_PAGE_SIZE = 500


class DatabaseError(RuntimeError):
    """Raised when a read against the settings store fails."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first_row(data: Any) -> Optional[Dict[str, Any]]:
    if isinstance(data, list):
        return data[0] if data else None
    if isinstance(data, dict):
        return data
    return None


class SupabaseDatabaseClient:
    """Database client for Supabase operations."""

    def __init__(self, client: Optional[Client] = None, table: Optional[str] = None):
        self.table_name = table or CONFIG.users_table

        if client is not None:
            self.client = client
            self.using_service_role = False
            return

        self.supabase_url = CONFIG.supabase_url or os.getenv("SUPABASE_URL")

        # Prefer service role key when available to bypass RLS for server-side operations
        service_key = CONFIG.supabase_service_role_key
        anon_key = CONFIG.supabase_anon_key

        if service_key:
            self.supabase_key = service_key
            self.using_service_role = True
        else:
            self.supabase_key = anon_key
            self.using_service_role = False

        if not self.supabase_url or not self.supabase_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_ANON_KEY (or SUPABASE_SERVICE_ROLE_KEY) environment variables are required"
            )

        self.client = create_client(self.supabase_url, self.supabase_key)

    def _table(self):
        return self.client.table(self.table_name)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def get_user(self, google_id: str) -> Optional[UserRecord]:
        """Load a user by Google account id, or None when no such user exists."""
        if not google_id:
            return None
        try:
            response = (
                self._table()
                .select("*")
                .eq("google_id", google_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise DatabaseError(f"Failed to load user {google_id}: {exc}") from exc

        row = _first_row(response.data)
        return UserRecord.from_row(row) if row else None

    def upsert_user_from_login(
        self,
        *,
        google_id: str,
        email: str,
        name: str,
        picture: Optional[str],
        access_token: str,
        refresh_token: Optional[str],
        token_expiry: Optional[datetime],
    ) -> UserRecord:
        """Create the user on first login, otherwise refresh profile and tokens."""

        payload: Dict[str, Any] = {
            "google_id": google_id,
            "email": email or "",
            "name": name or "",
            "picture": picture,
            "access_token": encrypt_token(access_token or ""),
            "token_expiry": token_expiry.isoformat() if token_expiry else None,
            "updated_at": _now_iso(),
        }
        # Google only returns a refresh token on consent; keep the stored one otherwise.
        if refresh_token:
            payload["refresh_token"] = encrypt_token(refresh_token)

        try:
            response = (
                self._table()
                .upsert(payload, on_conflict="google_id", returning="representation")
                .execute()
            )
        except Exception as exc:
            raise DatabaseError(f"Failed to save user {google_id}: {exc}") from exc

        row = _first_row(response.data)
        if row:
            record = UserRecord.from_row(row)
        else:
            record = self.get_user(google_id)
        if record is None:
            raise DatabaseError(f"User {google_id} was not returned after upsert")

        log("[db] stored login", user=google_id)
        return record

    def update_user_tokens(
        self,
        google_id: str,
        *,
        access_token: str,
        token_expiry: Optional[datetime] = None,
        refresh_token: Optional[str] = None,
    ) -> bool:
        """Persist tokens refreshed during an API call."""
        updates: Dict[str, Any] = {
            "access_token": encrypt_token(access_token or ""),
            "token_expiry": token_expiry.isoformat() if token_expiry else None,
            "updated_at": _now_iso(),
        }
        if refresh_token:
            updates["refresh_token"] = encrypt_token(refresh_token)

        try:
            self._table().update(updates).eq("google_id", google_id).execute()
            return True
        except Exception as exc:
            log(f"[db] failed to store refreshed tokens for user {google_id}: {exc}")
            return False

    # ------------------------------------------------------------------
    # Automation settings
    # ------------------------------------------------------------------
    def replace_automation_settings(
        self,
        google_id: str,
        settings: Sequence[AutomationSetting],
    ) -> bool:
        """Overwrite the entire settings list of a user."""
        payload = {
            "automation_settings": [setting.to_dict() for setting in settings],
            "updated_at": _now_iso(),
        }
        try:
            self._table().update(payload).eq("google_id", google_id).execute()
            return True
        except Exception as exc:
            log(f"[db] failed to save automation settings for user {google_id}: {exc}")
            return False

    def list_users_with_enabled_settings(self) -> List[UserRecord]:
        """Return every user with at least one enabled location."""
        users: List[UserRecord] = []
        start = 0
        while True:
            try:
                response = (
                    self._table()
                    .select("*")
                    .order("google_id")
                    .range(start, start + _PAGE_SIZE - 1)
                    .execute()
                )
            except Exception as exc:
                raise DatabaseError(f"Failed to list users: {exc}") from exc

            rows = response.data or []
            for row in rows:
                record = UserRecord.from_row(row)
                if record.has_enabled_settings:
                    users.append(record)

            if len(rows) < _PAGE_SIZE:
                break
            start += _PAGE_SIZE

        return users


# Global database client instance
_database_client: Optional[SupabaseDatabaseClient] = None


def get_database_client() -> SupabaseDatabaseClient:
    """Get the global database client instance."""
    global _database_client
    if _database_client is None:
        # Ensure environment is loaded
        from dotenv import load_dotenv

        from ..config import reload_config

        load_dotenv()
        reload_config()

        _database_client = SupabaseDatabaseClient()
    return _database_client


def set_database_client(client: Optional[SupabaseDatabaseClient]) -> None:
    """Replace the global client (None resets it)."""
    global _database_client
    _database_client = client


# Simple alias for readability
DatabaseClient = SupabaseDatabaseClient


__all__ = [
    "DatabaseClient",
    "DatabaseError",
    "SupabaseDatabaseClient",
    "get_database_client",
    "set_database_client",
]
