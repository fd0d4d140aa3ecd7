"""
Authentication utilities: Password hashing and JWT token management
"""

import jwt
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
from typing import Optional, Tuple
from config import settings

# Password hashing context
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto"
)

# JWT configuration
ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """Hash a password using argon2"""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(password, password_hash)


def _secret() -> str:
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot sign or verify JWT tokens.")
    return settings.jwt_secret_key


def create_jwt(user_id: int, email: str, full_name: str, expires_minutes: Optional[int] = None) -> Tuple[str, int]:
    """
    Create a signed token for a user.

    Returns:
        (token, lifetime in seconds)
    """
    lifetime = timedelta(minutes=expires_minutes or settings.jwt_expires_minutes)
    payload = {
        "sub": str(user_id),
        "email": email,
        "full_name": full_name,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    token = jwt.encode(payload, _secret(), algorithm=ALGORITHM)
    return token, int(lifetime.total_seconds())


def decode_jwt(token: str) -> Optional[dict]:
    """Decode a JWT token. Returns None if invalid or expired."""
    try:
        return jwt.decode(token, _secret(), algorithms=[ALGORITHM])
    except jwt.InvalidTokenError:
        return None


def create_expired_jwt(user_id: int, email: str = "expired@example.com", expired_seconds_ago: int = 1) -> str:
    """Create an already-expired token, for tests."""
    payload = {
        "sub": str(user_id),
        "email": email,
        "full_name": "",
        "exp": datetime.now(timezone.utc) - timedelta(seconds=expired_seconds_ago),
    }
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)
