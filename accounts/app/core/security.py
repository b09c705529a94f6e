"""Password hashing, JWT bearer tokens and one-time secrets."""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

CODE_MIN = 100000
CODE_MAX = 999999
RESET_TOKEN_BYTES = 20


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a password against its hash.

    Inputs passlib refuses to hash (oversized or malformed) never match.
    """
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        return False


def create_access_token(
    subject: str,
    secret: str,
    expire_minutes: int,
    algorithm: str = "HS256",
) -> str:
    """Create a signed bearer token.

    Args:
        subject: Account ID; the only identifying claim in the token.
        secret: Signing secret.
        expire_minutes: Lifetime of the token.
        algorithm: JWT signing algorithm.
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    return jwt.encode({"sub": subject, "exp": expire}, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[str]:
    """Decode and validate a bearer token.

    Returns:
        The subject (account ID) if valid, None otherwise.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None


def generate_verification_code() -> str:
    """Six-digit numeric code, uniform over [100000, 999999]."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def generate_reset_token() -> str:
    """Opaque reset secret sent to the user; never persisted in plaintext."""
    return secrets.token_hex(RESET_TOKEN_BYTES)


def hash_reset_token(token: str) -> str:
    """One-way digest stored in place of the reset token."""
    return hashlib.sha256(token.encode()).hexdigest()


def secrets_match(supplied: str, expected: str) -> bool:
    """Constant-time comparison of two secret strings."""
    return hmac.compare_digest(supplied.encode(), expected.encode())
