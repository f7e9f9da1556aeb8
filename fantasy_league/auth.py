"""
League passwords: hashed with passlib, never stored in plain text.
An empty password means the league is open to anyone in the server.
"""
from __future__ import annotations

from passlib.context import CryptContext

# pbkdf2_sha256 avoids the bcrypt backend self-test on import
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a league password. Empty string stays empty (open league)."""
    if not password:
        return ""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return True
    if not plain:
        return False
    return pwd_context.verify(plain, hashed)
