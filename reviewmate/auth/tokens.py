"""
Encryption helpers for OAuth tokens stored in the settings database.

Access and refresh tokens are never persisted in plain text; they are wrapped
with Fernet using the ``ENCRYPTION_KEY`` environment variable.
"""

import logging
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

_generated_key: Optional[bytes] = None


def get_encryption_key() -> bytes:
    """
    Get or generate the encryption key used for stored tokens.

    In production the key must come from ``ENCRYPTION_KEY``. Without it a
    process-local key is generated, which means tokens written by this process
    cannot be read by any other one.
    """
    global _generated_key

    key = os.getenv('ENCRYPTION_KEY')
    if key:
        return key.encode()

    if _generated_key is None:
        _generated_key = Fernet.generate_key()
        logger.warning(
            "ENCRYPTION_KEY is not set; generated a process-local key. "
            "Set ENCRYPTION_KEY to persist tokens across restarts."
        )
    return _generated_key


def encrypt_token(token: str) -> str:
    """Encrypt a sensitive token for storage."""
    if not token:
        return ""

    fernet = Fernet(get_encryption_key())
    encrypted_token = fernet.encrypt(token.encode())
    return encrypted_token.decode()


def decrypt_token(encrypted_token: str) -> str:
    """Decrypt a stored token. Returns an empty string when it cannot be read."""
    if not encrypted_token:
        return ""

    fernet = Fernet(get_encryption_key())
    try:
        decrypted_token = fernet.decrypt(encrypted_token.encode())
        return decrypted_token.decode()
    except InvalidToken:
        logger.warning("Failed to decrypt stored token; was ENCRYPTION_KEY rotated?")
        return ""
