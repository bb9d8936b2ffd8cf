"""
Password hashing and access token helpers
"""
from datetime import timedelta
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from app.core.config import get_settings
from app.core.exceptions import UnauthorizedError
from app.utils.datetime_utils import utc_now

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72

_dummy_hash: Optional[str] = None


def _encode_password(password: str) -> bytes:
    return password.encode('utf-8')[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(_encode_password(password), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a hash"""
    try:
        return bcrypt.checkpw(_encode_password(password), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def dummy_verify(password: str) -> None:
    """Spend the same bcrypt work as a real check when the account does not exist"""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("not-a-real-password")
    verify_password(password, _dummy_hash)


def create_access_token(
    subject: str,
    claims: Optional[Dict[str, Any]] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT

    Args:
        subject: User id placed in `sub` (and `id`)
        claims: Extra claims (email, role)
        expires_delta: Lifetime override, defaults to ACCESS_TOKEN_EXPIRE_HOURS

    Returns:
        Encoded token
    """
    settings = get_settings()
    now = utc_now()
    expire = now + (expires_delta or timedelta(hours=settings.access_token_expire_hours))
    payload: Dict[str, Any] = {
        "sub": subject,
        "id": subject,
        "iat": now,
        "exp": expire,
    }
    if claims:
        payload.update(claims)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a JWT, raising UnauthorizedError("Invalid token") on any failure"""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise UnauthorizedError("Invalid token") from exc
    if not payload.get("sub"):
        raise UnauthorizedError("Invalid token")
    return payload
