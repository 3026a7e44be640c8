"""Password hashing for user accounts."""

import hashlib
import hmac
import secrets
from base64 import b64encode, b64decode

from .services.exceptions import PasswordAuthenticationFailed

SALT_LENGTH = 16
ITERATIONS = 260000


def _hash_salt_and_password(salt: bytes, password: str) -> bytes:
    return hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt,
                               ITERATIONS)


def hash_password(password: str) -> str:
    """Generate a secure hash of a password."""
    salt = secrets.token_bytes(SALT_LENGTH)
    hashed = _hash_salt_and_password(salt, password)
    return b64encode(salt + hashed).decode('ascii')


def check_password(password: str, encrypted: str) -> None:
    """Check a password against an encrypted hash."""
    try:
        decoded = b64decode(encrypted)
    except ValueError as e:
        raise PasswordAuthenticationFailed('Stored hash is malformed') from e
    salt = decoded[:SALT_LENGTH]
    enc_hashed = decoded[SALT_LENGTH:]
    pass_hashed = _hash_salt_and_password(salt, password)
    if not hmac.compare_digest(pass_hashed, enc_hashed):
        raise PasswordAuthenticationFailed('Incorrect password')
