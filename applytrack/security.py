"""
Password hashing and verification utilities.

Uses passlib's bcrypt for secure password storage. Password-reset tokens are
random hex strings; only their sha256 digest is persisted.
"""
from __future__ import annotations

import hashlib
import secrets

from passlib.context import CryptContext

# Configure passlib context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Return a bcrypt hash for the given plain password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hashed form."""
    return pwd_context.verify(plain_password, hashed_password)


def generate_reset_token() -> str:
    return secrets.token_hex(20)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()
