"""
Security Utilities

JWT access token handling and at-rest encryption of stored secrets
(access tokens, webhook signing secrets).
"""

import base64
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from agent_eval.config import get_settings


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary of claims to encode in the token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()

    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({
        "exp": expire,
        "type": "access",
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    })

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.algorithm
    )


def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string to decode
        expected_type: If provided, validates that token type matches (e.g., "access")

    Returns:
        Decoded token payload or None if invalid/expired/wrong type
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )

        if expected_type is not None and payload.get("type") != expected_type:
            return None

        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


# =============================================================================
# Secret Encryption (for storing secrets in database)
# =============================================================================


def _get_fernet_key() -> bytes:
    """
    Derive a Fernet-compatible key from the application secret using HKDF.

    The salt is configurable via AGENT_EVAL_FERNET_SALT.

    Returns:
        32-byte key suitable for Fernet encryption
    """
    settings = get_settings()

    kdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=settings.fernet_salt.encode(),
        info=b"agent-eval-secrets-encryption",
    )

    return base64.urlsafe_b64encode(kdf.derive(settings.secret_key.encode()))


def encrypt_secret(plaintext: str) -> str:
    """
    Encrypt a secret value for storage in the database.

    Args:
        plaintext: The secret value to encrypt

    Returns:
        Base64-encoded encrypted value
    """
    f = Fernet(_get_fernet_key())
    encrypted = f.encrypt(plaintext.encode())
    return base64.urlsafe_b64encode(encrypted).decode()
