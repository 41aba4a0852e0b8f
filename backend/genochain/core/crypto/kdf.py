"""
Password-based key derivation (PBKDF2-HMAC-SHA512).

Every symmetric key in an encrypted package comes out of this module: the
master key from the owner's password, and each tier key from the hex form of
the master key under its own salt. Output is a pure function of
(password, salt, iterations, length).
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from genochain.core.errors import InvalidParameterError

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS: int = 100_000
KDF_ALGORITHM: str = "pbkdf2-sha512"
# PBKDF2 caps output at (2^32 - 1) hash blocks.
MAX_KEY_LENGTH: int = (2**32 - 1) * 64


def random_bytes(size: int) -> bytes:
    """CSPRNG bytes for salts, nonces and IVs."""
    if size <= 0:
        raise InvalidParameterError(f"Random byte count must be positive, got {size}")
    return secrets.token_bytes(size)


def key_fingerprint(key: bytes) -> str:
    """Short SHA-256 fingerprint of a key, safe for log lines."""
    return hashlib.sha256(key).hexdigest()[:16]


def _as_bytes(password: Union[str, bytes]) -> bytes:
    if isinstance(password, str):
        return password.encode("utf-8")
    if isinstance(password, (bytes, bytearray)):
        return bytes(password)
    raise InvalidParameterError(
        f"Password must be str or bytes, got {type(password).__name__}"
    )


class KeyDerivation:
    """
    PBKDF2-HMAC-SHA512 with a fixed iteration count.

    Usage:
        kdf = KeyDerivation(iterations=100_000)
        key = kdf.derive("correct horse", salt, 32)
    """

    def __init__(self, iterations: int = DEFAULT_ITERATIONS) -> None:
        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations <= 0:
            raise InvalidParameterError(f"Iterations must be a positive integer, got {iterations!r}")
        self._iterations = iterations

    @property
    def iterations(self) -> int:
        return self._iterations

    def derive(self, password: Union[str, bytes], salt: bytes, length: int) -> bytes:
        """
        Derive ``length`` key bytes from a password and salt.

        Raises:
            InvalidParameterError: empty password or salt, or a length outside
                1..MAX_KEY_LENGTH.
        """
        secret = _as_bytes(password)
        if not secret:
            raise InvalidParameterError("Password must not be empty")
        if not salt:
            raise InvalidParameterError("Salt must not be empty")
        if isinstance(length, bool) or not isinstance(length, int) or not 0 < length <= MAX_KEY_LENGTH:
            raise InvalidParameterError(f"Key length must be in 1..{MAX_KEY_LENGTH}, got {length!r}")

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA512(),
            length=length,
            salt=bytes(salt),
            iterations=self._iterations,
        )
        return kdf.derive(secret)


def derive_key(password: Union[str, bytes], salt: bytes, iterations: int, length: int) -> bytes:
    return KeyDerivation(iterations).derive(password, salt, length)
