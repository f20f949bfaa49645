"""
Session authentication for the public API.

This module provides:
- Signed session tokens issued after a successful Google login
- JWT validation for incoming requests
- The ``require_auth`` helper used by FastAPI dependencies

The acting identity of every request is the token subject. Routes never trust
a caller supplied account identifier.
"""

import os
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status

from ..config import CONFIG


logger = logging.getLogger(__name__)

SESSION_AUDIENCE = "reviewmate"
SESSION_ALGORITHM = "HS256"


class SessionAuthManager:
    """Issues and verifies HS256 session tokens bound to a Google account id."""

    def __init__(self, secret: Optional[str] = None, ttl_seconds: Optional[int] = None):
        self.secret = secret or CONFIG.session_secret or os.getenv("SESSION_SECRET")
        if not self.secret:
            raise ValueError("SESSION_SECRET environment variable is required")
        self.ttl_seconds = ttl_seconds or CONFIG.session_ttl_seconds

    def issue_token(self, user_id: str, email: Optional[str] = None) -> str:
        """Create a signed session token for the given Google account id."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "aud": SESSION_AUDIENCE,
            "iat": now,
            "exp": now + timedelta(seconds=self.ttl_seconds),
        }
        return jwt.encode(payload, self.secret, algorithm=SESSION_ALGORITHM)

    def verify_jwt_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify and decode a session token.

        Args:
            token: The JWT token to verify

        Returns:
            Decoded token payload if valid, None if invalid or expired
        """
        if not token:
            logger.debug("verify_jwt_token received empty token")
            return None
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[SESSION_ALGORITHM],
                audience=SESSION_AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            logger.info("Session token expired")
            return None
        except jwt.InvalidTokenError as exc:
            logger.warning("Session token rejected: %s", exc)
            return None

    def get_user_from_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Extract user information from a valid session token."""
        payload = self.verify_jwt_token(token)
        if not payload or not payload.get("sub"):
            return None

        return {
            "id": payload.get("sub"),
            "email": payload.get("email"),
        }

    def authenticate_request_token(self, authorization_header: str) -> Optional[str]:
        """
        Extract and validate the session token from an Authorization header.

        Returns:
            Google account id if valid, None if invalid
        """
        if not authorization_header or not authorization_header.startswith("Bearer "):
            return None

        token = authorization_header[7:].strip()
        user_info = self.get_user_from_token(token)
        return user_info.get("id") if user_info else None


AuthManager = SessionAuthManager


# Global auth manager instance
_auth_manager: Optional[AuthManager] = None


def get_auth_manager() -> AuthManager:
    """Get the global AuthManager instance."""
    global _auth_manager
    if _auth_manager is None:
        _auth_manager = AuthManager()
    return _auth_manager


def require_auth(authorization: str = None) -> str:
    """
    Require a valid session token.

    Args:
        authorization: Authorization header value

    Returns:
        Google account id of the authenticated user

    Raises:
        HTTPException: If authentication fails
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    auth_manager = get_auth_manager()
    user_id = auth_manager.authenticate_request_token(authorization)

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user_id
