"""
AES-GCM authenticated encryption for package tiers, metadata and tokens.

Key size selects the variant: 16 bytes is aes-128-gcm, 24 bytes aes-192-gcm,
32 bytes aes-256-gcm. Every encryption draws a fresh nonce. Decryption fails
closed with IntegrityError and never returns partial plaintext.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from genochain.core.config import SUPPORTED_ALGORITHMS
from genochain.core.crypto.kdf import key_fingerprint, random_bytes
from genochain.core.errors import IntegrityError, InvalidParameterError
from genochain.schemas.package import EncryptedBlob

logger = logging.getLogger(__name__)

NONCE_SIZE: int = 12   # 96-bit nonce for GCM
TAG_SIZE: int = 16     # 128-bit authentication tag
MIN_NONCE_SIZE: int = 8
MAX_NONCE_SIZE: int = 128

_KEY_SIZES: Dict[str, int] = dict(SUPPORTED_ALGORITHMS)
_ALGORITHMS: Dict[int, str] = {size: name for name, size in _KEY_SIZES.items()}


def algorithm_for_key_size(key_size: int) -> str:
    try:
        return _ALGORITHMS[key_size]
    except KeyError:
        raise InvalidParameterError(
            f"AES-GCM key must be 16, 24 or 32 bytes, got {key_size}"
        ) from None


def key_size_for_algorithm(algorithm: str) -> int:
    try:
        return _KEY_SIZES[algorithm]
    except KeyError:
        raise InvalidParameterError(f"Unsupported AEAD algorithm {algorithm!r}") from None


class AEADCipher:
    """
    AES-GCM with the authentication tag carried separately from the ciphertext.

    Usage:
        cipher = AEADCipher(tier_key)
        blob = cipher.encrypt(plaintext)
        plaintext = cipher.decrypt(blob)
    """

    def __init__(self, key: bytes, nonce_size: int = NONCE_SIZE) -> None:
        self.algorithm = algorithm_for_key_size(len(key))
        if not MIN_NONCE_SIZE <= nonce_size <= MAX_NONCE_SIZE:
            raise InvalidParameterError(
                f"AES-GCM nonce must be {MIN_NONCE_SIZE}..{MAX_NONCE_SIZE} bytes, got {nonce_size}"
            )
        self._key = bytes(key)
        self._nonce_size = nonce_size
        self._aead = AESGCM(self._key)

    @property
    def key_fingerprint(self) -> str:
        """SHA-256 fingerprint of the key (for audit logging, never expose the key)."""
        return key_fingerprint(self._key)

    def encrypt(self, plaintext: bytes, associated_data: Optional[bytes] = None) -> EncryptedBlob:
        nonce = random_bytes(self._nonce_size)
        sealed = self._aead.encrypt(nonce, plaintext, associated_data)
        # AESGCM appends the tag to the ciphertext
        return EncryptedBlob(
            ciphertext=sealed[:-TAG_SIZE],
            iv=nonce,
            auth_tag=sealed[-TAG_SIZE:],
            algorithm=self.algorithm,
        )

    def decrypt(self, blob: EncryptedBlob, associated_data: Optional[bytes] = None) -> bytes:
        """
        Authenticate and decrypt a blob.

        Raises:
            IntegrityError: tag mismatch, wrong key, algorithm mismatch or a
                malformed nonce/tag.
        """
        if blob.algorithm != self.algorithm:
            raise IntegrityError(
                f"Blob sealed with {blob.algorithm}, key is {self.algorithm}"
            )
        if len(blob.auth_tag) != TAG_SIZE:
            raise IntegrityError("Authentication tag has the wrong length")
        if not MIN_NONCE_SIZE <= len(blob.iv) <= MAX_NONCE_SIZE:
            raise IntegrityError("Nonce has the wrong length")
        try:
            return self._aead.decrypt(blob.iv, blob.ciphertext + blob.auth_tag, associated_data)
        except InvalidTag:
            logger.debug(f"[CIPHER] Tag verification failed (key {self.key_fingerprint})")
            raise IntegrityError("Authentication tag verification failed") from None


def wrap_key(key: bytes, wrapping_key: bytes, nonce_size: int = NONCE_SIZE) -> bytes:
    """Seal hex(key) under ``wrapping_key``; returns iv || tag || ciphertext."""
    blob = AEADCipher(wrapping_key, nonce_size).encrypt(key.hex().encode("ascii"))
    return blob.iv + blob.auth_tag + blob.ciphertext


def unwrap_key(wrapped: bytes, wrapping_key: bytes, nonce_size: int = NONCE_SIZE) -> bytes:
    cipher = AEADCipher(wrapping_key, nonce_size)
    if len(wrapped) <= nonce_size + TAG_SIZE:
        raise IntegrityError("Wrapped key is truncated")
    blob = EncryptedBlob(
        iv=wrapped[:nonce_size],
        auth_tag=wrapped[nonce_size:nonce_size + TAG_SIZE],
        ciphertext=wrapped[nonce_size + TAG_SIZE:],
        algorithm=cipher.algorithm,
    )
    hex_key = cipher.decrypt(blob)
    try:
        return bytes.fromhex(hex_key.decode("ascii"))
    except (UnicodeDecodeError, ValueError):
        raise IntegrityError("Wrapped key payload is not a hex key") from None
