"""
Encryption utilities for access tokens and passwords
Uses Fernet symmetric encryption for signed, expiring tokens
and bcrypt (via passlib) for password hashes
"""
import os
import base64
import hashlib
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken
from passlib.context import CryptContext
from loguru import logger

from config import settings

# bcrypt only considers the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


def get_encryption_key() -> bytes:
    """
    Derive the Fernet key from SECRET_KEY.
    If not set, logs a warning and uses a default (NOT SECURE FOR PRODUCTION).
    """
    secret = settings.SECRET_KEY or os.environ.get("GLOSSA_SECRET_KEY")

    if not secret:
        logger.warning(
            "SECRET_KEY not set! Using default key. "
            "Set SECRET_KEY environment variable for production security."
        )
        secret = "glossa-dev-key-change-in-production"

    # Fernet requires a 32-byte base64-encoded key
    key_hash = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(key_hash)


def get_fernet() -> Fernet:
    """Get Fernet instance with current encryption key"""
    return Fernet(get_encryption_key())


def issue_token(user_id: str) -> str:
    """
    Create an access token for a user.

    Args:
        user_id: ID of the authenticated user

    Returns:
        Fernet token (embeds its creation time)
    """
    fernet = get_fernet()
    return fernet.encrypt(user_id.encode("utf-8")).decode("utf-8")


def read_token(token: str, ttl: Optional[int] = None) -> Optional[str]:
    """
    Return the user id carried by a token, or None when the token is
    malformed, forged or older than ttl seconds.
    """
    if not token:
        return None

    ttl = settings.TOKEN_TTL_SECONDS if ttl is None else ttl
    try:
        return get_fernet().decrypt(token.encode("utf-8"), ttl=ttl).decode("utf-8")
    except InvalidToken:
        logger.debug("Rejected invalid or expired access token")
        return None


def _truncate(password: str) -> str:
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES].decode("utf-8", "ignore")


def hash_password(password: str) -> str:
    """Salted bcrypt hash of a password"""
    return pwd_context.hash(_truncate(password))


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash; unrecognised hashes never match"""
    try:
        return pwd_context.verify(_truncate(password), password_hash)
    except ValueError:
        logger.warning("Stored password hash has an unrecognised format")
        return False
