"""
Password hashing with scrypt (cryptography).

Stored format: scrypt$<salt hex>$<hash hex>
"""

import os

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

SALT_BYTES = 16
KEY_LENGTH = 32
# Interactive-login cost parameters
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

MIN_PASSWORD_LENGTH = 8


def _kdf(salt: bytes) -> Scrypt:
    return Scrypt(salt=salt, length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)


def hash_password(password: str) -> str:
    salt = os.urandom(SALT_BYTES)
    key = _kdf(salt).derive(password.encode("utf-8"))
    return f"scrypt${salt.hex()}${key.hex()}"


def verify_password(password: str, stored: str | None) -> bool:
    """Constant-time check of `password` against a stored hash."""
    if not stored:
        return False
    try:
        scheme, salt_hex, key_hex = stored.split("$")
        if scheme != "scrypt":
            return False
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(key_hex)
    except ValueError:
        return False

    try:
        _kdf(salt).verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True
