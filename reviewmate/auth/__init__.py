"""
Authentication and Credential Management

This module provides:
- Session token issuing and validation for API requests
- Encryption helpers for OAuth tokens kept in the database
"""

from .manager import AuthManager, get_auth_manager, require_auth
from .tokens import encrypt_token, decrypt_token

__all__ = [
    'AuthManager',
    'get_auth_manager',
    'require_auth',
    'encrypt_token',
    'decrypt_token'
]
