from datetime import datetime, timedelta, timezone
import secrets
from typing import Optional
from passlib.context import CryptContext
from jose import jwt, JWTError
from marketplace.config.settings import config_settings

ACCESS_TOKEN_TYPE = "access"

# argon2 by default , hashes written under older schemes still verify and get flagged for rehash
pwd_context = CryptContext(schemes=[config_settings.PASS_HASH_SCHEME], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    """Constant time check of a password against a stored hash.

    CPU bound , callers on the event loop go through run_in_threadpool. A missing or
    malformed hash is a mismatch rather than an error.
    """
    if not password_hash:
        return False
    try:
        return pwd_context.verify(plain_password, password_hash)
    except (ValueError, TypeError):
        return False


def issue_access_token(subject: str, expires_minutes: Optional[int] = None) -> str:
    # tokens normally come from the identity service sharing JWT_SECRET , this is its claim layout
    ttl = int(expires_minutes if expires_minutes is not None else config_settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "typ": ACCESS_TOKEN_TYPE,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=ttl)).timestamp()),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(claims, config_settings.JWT_SECRET, algorithm=config_settings.JWT_ALGO)


def read_access_token(token: str) -> Optional[str]:
    """Returns the subject (user public id) of a valid access token , None otherwise."""
    try:
        claims = jwt.decode(token, config_settings.JWT_SECRET, algorithms=[config_settings.JWT_ALGO])
    except JWTError:
        return None
    if claims.get("typ", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        return None
    return claims.get("sub") or None
