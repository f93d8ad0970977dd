"""
Password hashing and credential helpers.

Passwords are stored as ``pbkdf2_sha256$<iterations>$<salt>$<hexdigest>`` so
the iteration count can change without invalidating existing hashes.
"""
from __future__ import annotations

import hashlib
import hmac
import secrets
import uuid

_ALGORITHM = "pbkdf2_sha256"


def _pbkdf2(password: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations).hex()


# PUBLIC_INTERFACE
def hash_password(password: str, iterations: int = 260_000) -> str:
    """Hash a password with a fresh random salt."""
    salt = secrets.token_hex(16)
    return f"{_ALGORITHM}${iterations}${salt}${_pbkdf2(password, salt, iterations)}"


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash in constant time."""
    try:
        algorithm, iterations, salt, expected = password_hash.split("$")
        rounds = int(iterations)
    except ValueError:
        return False
    if algorithm != _ALGORITHM:
        return False
    return hmac.compare_digest(_pbkdf2(password, salt, rounds), expected)


# PUBLIC_INTERFACE
def generate_token() -> str:
    """Generate an unpredictable bearer credential."""
    return secrets.token_urlsafe(32)


def token_digest(token: str) -> str:
    """Storage key for a credential; the raw token is never persisted."""
    return hashlib.sha256(token.encode()).hexdigest()


def new_id() -> str:
    return uuid.uuid4().hex
