"""
Security utilities for authentication
"""
import logging
from datetime import timedelta
from typing import Dict, Optional

import bcrypt
from jose import JWTError, jwt

from app.core.config import settings
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password with bcrypt"""
    password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def validate_password(password: str) -> str:
    """
    Validate and normalize password for hashing

    Args:
        password: Raw password string

    Returns:
        Normalized password (trimmed)

    Raises:
        ValueError: If password is invalid with specific error message
    """
    if password is None:
        raise ValueError("Password is required")

    password = password.strip()
    if not password:
        raise ValueError("Password cannot be empty")

    if len(password) < 6:
        raise ValueError("Password must be at least 6 characters")

    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError("Password cannot be longer than 72 bytes when encoded as UTF-8")

    return password


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash"""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES],
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


def create_access_token(data: Dict, expires_minutes: Optional[int] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()

    if expires_minutes is None:
        expires_minutes = settings.JWT_EXPIRE_MINUTES

    to_encode.update({"exp": now_utc() + timedelta(minutes=expires_minutes)})

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def decode_token(token: str) -> Dict:
    """Decode and verify a JWT token"""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise ValueError("Invalid token")
