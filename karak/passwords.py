"""
Password hashing and verification (Argon2id via argon2-cffi).
"""

from functools import lru_cache
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash *password* with a fresh random salt; returns a PHC string."""
    return _hasher.hash(password)


@lru_cache(maxsize=1)
def _decoy_hash() -> str:
    # Hash of the empty password, checked when the user does not exist.
    return _hasher.hash("")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """
    Check *password* against *password_hash*.

    Without a hash the password is still verified against a decoy hash, so a
    missing user costs the same time as a wrong password.
    """
    target = password_hash if password_hash is not None else _decoy_hash()
    try:
        _hasher.verify(target, password)
    except (VerificationError, InvalidHashError):
        return False
    return password_hash is not None
