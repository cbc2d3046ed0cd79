"""At-rest encryption for stored third-party API keys."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from oceo.config import get_settings


def _fernet() -> Fernet:
    settings = get_settings()
    secret = settings.mmfc_encryption_key or settings.session_secret
    if len(secret) < 32:
        msg = "Encryption key must be at least 32 characters long"
        raise RuntimeError(msg)
    return Fernet(base64.urlsafe_b64encode(hashlib.sha256(secret.encode()).digest()))


def encrypt_api_key(api_key: str) -> str:
    return _fernet().encrypt(api_key.encode()).decode()


def decrypt_api_key(token: str) -> str:
    """
    Raises:
        ValueError: The token was not produced with the current key.
    """
    try:
        return _fernet().decrypt(token.encode()).decode()
    except InvalidToken as e:
        msg = "Failed to decrypt API key"
        raise ValueError(msg) from e


def mask_api_key(api_key: str) -> str:
    """Keep the prefix visible: ``int_4P-xifr...``."""
    if len(api_key) <= 15:
        return api_key
    return f"{api_key[:11]}..."
