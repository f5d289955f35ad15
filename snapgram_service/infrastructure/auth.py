"""
Password hashing and JWT helpers
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
import secrets

from jose import jwt, JWTError
from passlib.context import CryptContext

from ..config import settings


pwd_context = CryptContext(
    schemes=settings.PASSWORD_HASH_SCHEMES,
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(password: str) -> str:
    """Hash a plain password"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Check a plain password against its hash"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def validate_password_strength(password: str) -> Tuple[bool, Optional[str]]:
    """
    Validate password rules

    Returns:
        Tuple of (is_valid, error_message)
    """
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        return False, f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long."
    if password.strip() != password:
        return False, "Password cannot start or end with whitespace."
    return True, None


def _create_token(data: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "type": token_type,
        "iat": datetime.utcnow(),
        "exp": datetime.utcnow() + expires_delta,
        # Two tokens minted in the same second must still differ
        "jti": secrets.token_hex(8),
    })
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: Dict[str, Any]) -> str:
    """Create a short-lived access token"""
    return _create_token(
        data,
        "access",
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(data: Dict[str, Any]) -> str:
    """Create a long-lived refresh token"""
    return _create_token(
        data,
        "refresh",
        timedelta(hours=settings.REFRESH_TOKEN_EXPIRE_HOURS),
    )


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify a token, None if invalid or expired"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def generate_reset_token() -> str:
    """Random single-use token for password reset links"""
    return secrets.token_urlsafe(32)
