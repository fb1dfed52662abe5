"""
Security utilities: password hashing and JWT access tokens.

1. PASSWORD HASHING (Argon2id via passlib)
   - Passwords are never stored in plaintext
   - CryptContext keeps old hashes verifiable if the scheme ever changes
     ("deprecated='auto'")

2. JWT TOKENS (python-jose, HS256)
   - Login and signup return a signed token whose "sub" claim is the user id
   - Tokens expire after ACCESS_TOKEN_EXPIRE_MINUTES
   - The server is stateless: the role is re-read from the database on every
     request (see dependencies.get_current_user), so promoting or demoting
     an admin takes effect without re-issuing tokens
"""

from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from wallet_ledger.config import settings


pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password using Argon2id."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time check of a plaintext password against a stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to encode (must include "sub").
        expires_delta: Optional lifetime. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    claims = dict(data)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
