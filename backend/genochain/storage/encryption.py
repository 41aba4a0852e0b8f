"""
Multi-tier genetic data encryption.

═══════════════════════════════════════════════════════════════════════════════
KEY SCHEDULE
═══════════════════════════════════════════════════════════════════════════════

  master_key    = PBKDF2(password,        master_salt, iterations, 32)
  tier_key[T]   = PBKDF2(hex(master_key), tier_salt[T], iterations, 16|24|32)
  metadata_key  = PBKDF2(hex(master_key), master_salt, iterations, 32)

  Tier keys are siblings, not a chain: holding tier_key[1] says nothing
  about tier_key[2] or tier_key[3]. Each tier key is also stored sealed
  under the master key (iv ‖ tag ‖ ct) so a tampered key slot is detected.

═══════════════════════════════════════════════════════════════════════════════
FAILURE MODEL
═══════════════════════════════════════════════════════════════════════════════

  Wrong password and tampered ciphertext surface as the same
  AuthenticationError. Nothing is released before the tag verifies.
  A failed encrypt never returns a partial package.
"""

from __future__ import annotations

import json
import logging
import math
import re
import secrets
import string
import time
from typing import Any, Dict, List, Mapping, Optional, Union

from genochain.core.config import EncryptionConfig, settings
from genochain.core.crypto.cipher import AEADCipher, key_size_for_algorithm, unwrap_key, wrap_key
from genochain.core.crypto.commitment import canonical_json, constant_time_equals, sha256
from genochain.core.crypto.kdf import KDF_ALGORITHM, KeyDerivation, key_fingerprint, random_bytes
from genochain.core.errors import (
    AccessLevelUnavailableError,
    AccessTokenExpiredError,
    AuthenticationError,
    DecryptionError,
    EncryptionError,
    GenomicChainError,
    IntegrityError,
    InvalidAccessLevelError,
    InvalidParameterError,
)
from genochain.schemas.genomic import GeneticDataset
from genochain.schemas.package import (
    VALID_TIERS,
    AccessToken,
    AccessTokenPayload,
    AccessTier,
    DecryptedTier,
    EncryptedBlob,
    EncryptedPackage,
    PackageMetadata,
    PasswordStrength,
    TierConfig,
    WrappedKey,
)
from genochain.storage.tiers import TierPartitioner

logger = logging.getLogger(__name__)

PACKAGE_VERSION: str = "1.0.0"
ACCESS_TOKEN_TTL_SECONDS: int = 24 * 60 * 60
ACCESS_TOKEN_NONCE_BYTES: int = 16
SECURE_PASSWORD_ALPHABET: str = string.ascii_letters + string.digits + "!@#$%^&*()_+-=[]{}|;:,.<>?"

Password = Union[str, bytes]


def _require_password(password: Password, name: str = "Password") -> None:
    if not isinstance(password, (str, bytes, bytearray)) or not password:
        raise InvalidParameterError(f"{name} must be a non-empty string")


def _validate_level(access_level: Any) -> int:
    if isinstance(access_level, bool) or not isinstance(access_level, int) or access_level not in VALID_TIERS:
        raise InvalidAccessLevelError(access_level)
    return int(access_level)


def generate_checksum(data: Any) -> str:
    """SHA-256 hex digest of the canonical JSON form of ``data``."""
    return sha256(canonical_json(data).encode("utf-8")).hex()


def verify_integrity(data: Any, expected_checksum: str) -> bool:
    return constant_time_equals(
        generate_checksum(data).encode("ascii"),
        expected_checksum.encode("ascii"),
    )


class EncryptionManager:
    """
    Encrypts a dataset into independently keyed access tiers and opens them.

    Usage:
        manager = EncryptionManager()
        package = manager.encrypt(dataset, "owner password")
        tier = manager.decrypt(package, "owner password", access_level=2)
    """

    def __init__(
        self,
        config: Optional[Union[EncryptionConfig, Mapping[str, Any]]] = None,
        partitioner: Optional[TierPartitioner] = None,
    ) -> None:
        if config is None:
            config = settings.encryption_config()
        elif not isinstance(config, EncryptionConfig):
            config = EncryptionConfig.from_options(dict(config))
        self.config = config
        self._kdf = KeyDerivation(config.key_derivation_iterations)
        self._partitioner = partitioner or TierPartitioner()

    # ── Key schedule ──

    def _master_key(self, password: Password, master_salt: bytes) -> bytes:
        return self._kdf.derive(password, master_salt, self.config.master_key_size)

    def _tier_key(self, master_key: bytes, tier_salt: bytes, algorithm: str) -> bytes:
        return self._kdf.derive(master_key.hex(), tier_salt, key_size_for_algorithm(algorithm))

    def _metadata_key(self, master_key: bytes, master_salt: bytes) -> bytes:
        return self._kdf.derive(master_key.hex(), master_salt, self.config.master_key_size)

    def _cipher(self, key: bytes) -> AEADCipher:
        return AEADCipher(key, self.config.iv_length)

    def _open_metadata(self, package: EncryptedPackage, master_key: bytes) -> PackageMetadata:
        metadata_key = self._metadata_key(master_key, package.master_salt)
        try:
            plaintext = self._cipher(metadata_key).decrypt(package.encrypted_metadata)
        except IntegrityError:
            logger.warning("[ENCRYPTION] Metadata authentication failed")
            raise AuthenticationError() from None
        return PackageMetadata.model_validate_json(plaintext)

    def _open_tier_key(
        self,
        package: EncryptedPackage,
        metadata: PackageMetadata,
        master_key: bytes,
        level: int,
    ) -> bytes:
        if level not in metadata.access_levels or level not in package.encrypted_tiers:
            raise AccessLevelUnavailableError(level)
        algorithm = metadata.tier_algorithms[level]
        wrapped = package.access_keys[level]
        tier_key = self._tier_key(master_key, wrapped.salt, algorithm)
        try:
            stored = unwrap_key(wrapped.encrypted_key, master_key, self.config.iv_length)
        except IntegrityError:
            raise AuthenticationError() from None
        if not constant_time_equals(stored, tier_key):
            logger.warning(f"[ENCRYPTION] Key slot mismatch for tier {level}")
            raise AuthenticationError()
        return tier_key

    def _open_tier(self, blob: EncryptedBlob, tier_key: bytes) -> Dict[str, Any]:
        try:
            plaintext = self._cipher(tier_key).decrypt(blob)
        except IntegrityError:
            raise AuthenticationError() from None
        return json.loads(plaintext.decode("utf-8"))

    # ── Encrypt / decrypt ──

    def encrypt(
        self,
        dataset: Union[GeneticDataset, Mapping[str, Any]],
        password: Password,
        tier_config: Optional[Union[TierConfig, Mapping[str, Any]]] = None,
    ) -> EncryptedPackage:
        """
        Encrypt a dataset into one AEAD blob per access tier.

        Raises:
            InvalidDataError: dataset missing, empty or malformed.
            InvalidParameterError: empty password, policy violation, bad tier config.
            EncryptionError: any other failure; no partial package is returned.
        """
        model = GeneticDataset.from_input(dataset)
        _require_password(password)
        if self.config.enforce_password_policy:
            violations = self.check_password_policy(password)
            if violations:
                raise InvalidParameterError("Password does not meet policy", {"violations": violations})
        tiers = TierConfig.coerce(tier_config)

        try:
            views = self._partitioner.partition(model, tiers)

            master_salt = random_bytes(self.config.salt_length)
            master_key = self._master_key(password, master_salt)

            encrypted_tiers: Dict[int, EncryptedBlob] = {}
            access_keys: Dict[int, WrappedKey] = {}
            tier_algorithms: Dict[int, str] = {}
            for level, view in views.items():
                algorithm = self.config.level(level).algorithm
                tier_salt = random_bytes(self.config.salt_length)
                tier_key = self._tier_key(master_key, tier_salt, algorithm)

                encrypted_tiers[level] = self._cipher(tier_key).encrypt(canonical_json(view).encode("utf-8"))
                access_keys[level] = WrappedKey(
                    encrypted_key=wrap_key(tier_key, master_key, self.config.iv_length),
                    salt=tier_salt,
                )
                tier_algorithms[level] = algorithm

            metadata = PackageMetadata(
                version=PACKAGE_VERSION,
                timestamp=time.time(),
                access_levels=sorted(views),
                algorithm=self.config.algorithm,
                tier_algorithms=tier_algorithms,
                key_derivation=KDF_ALGORITHM,
                iterations=self.config.key_derivation_iterations,
            )
            encrypted_metadata = self._cipher(self._metadata_key(master_key, master_salt)).encrypt(
                metadata.model_dump_json(by_alias=True).encode("utf-8")
            )

            package = EncryptedPackage(
                master_salt=master_salt,
                encrypted_tiers=encrypted_tiers,
                access_keys=access_keys,
                encrypted_metadata=encrypted_metadata,
                checksum=generate_checksum(model.source()),
            )
        except GenomicChainError:
            raise
        except Exception as exc:
            logger.error(f"[ENCRYPTION] Encryption failed: {type(exc).__name__}")
            raise EncryptionError(f"Encryption failed: {exc}") from exc

        logger.info(
            f"[ENCRYPTION] Encrypted dataset into tiers {sorted(encrypted_tiers)} "
            f"(master key {key_fingerprint(master_key)})"
        )
        return package

    def decrypt(
        self,
        package: Union[EncryptedPackage, Mapping[str, Any], bytes],
        password: Password,
        access_level: int = AccessTier.BASIC,
    ) -> DecryptedTier:
        """
        Decrypt one tier of a package.

        Raises:
            InvalidAccessLevelError: access_level not in 1..3.
            AccessLevelUnavailableError: tier not present in this package.
            AuthenticationError: wrong password or tampered package.
            DecryptionError: any other failure.
        """
        level = _validate_level(access_level)
        _require_password(password)
        package = EncryptedPackage.coerce(package)

        try:
            master_key = self._master_key(password, package.master_salt)
            metadata = self._open_metadata(package, master_key)
            tier_key = self._open_tier_key(package, metadata, master_key, level)
            data = self._open_tier(package.encrypted_tiers[level], tier_key)
        except GenomicChainError:
            raise
        except Exception as exc:
            logger.error(f"[ENCRYPTION] Decryption failed: {type(exc).__name__}")
            raise DecryptionError(f"Decryption failed: {exc}") from exc

        integrity_verified = None
        if level == AccessTier.FULL:
            integrity_verified = verify_integrity(
                TierPartitioner.strip_full_marker(data), package.checksum
            )

        logger.info(f"[ENCRYPTION] Decrypted tier {level}")
        return DecryptedTier(
            data=data,
            access_level=level,
            metadata={
                "version": metadata.version,
                "timestamp": metadata.timestamp,
                "decryptedAt": time.time(),
            },
            integrity_verified=integrity_verified,
        )

    # ── Delegation tokens ──

    def _token_key(self, package: EncryptedPackage, level: int, *, master_key: Optional[bytes] = None,
                   recipient_key: Optional[Password] = None) -> bytes:
        if recipient_key is not None:
            return self._kdf.derive(recipient_key, package.master_salt, 32)
        return self._kdf.derive(master_key.hex() + str(level), package.master_salt, 32)

    def generate_access_key(
        self,
        package: Union[EncryptedPackage, Mapping[str, Any], bytes],
        password: Password,
        access_level: int,
        recipient_key: Optional[Password] = None,
        validity_seconds: int = ACCESS_TOKEN_TTL_SECONDS,
    ) -> AccessToken:
        """
        Issue a delegation token for one tier.

        With ``recipient_key`` the token is sealed under a key derived from it,
        so the recipient can open the tier without the owner's password.
        Without it, the token is sealed for the owner (master key + tier).
        """
        level = _validate_level(access_level)
        _require_password(password)
        if recipient_key is not None:
            _require_password(recipient_key, "Recipient key")
        if validity_seconds <= 0:
            raise InvalidParameterError("Token validity must be positive")
        package = EncryptedPackage.coerce(package)

        try:
            master_key = self._master_key(password, package.master_salt)
            metadata = self._open_metadata(package, master_key)
            tier_key = self._open_tier_key(package, metadata, master_key, level)

            valid_until = time.time() + validity_seconds
            payload = AccessTokenPayload(
                access_level=level,
                tier_salt=package.access_keys[level].salt,
                algorithm=metadata.tier_algorithms[level],
                tier_key=tier_key,
                valid_until=valid_until,
                nonce=random_bytes(ACCESS_TOKEN_NONCE_BYTES),
            )
            token_key = self._token_key(package, level, master_key=master_key, recipient_key=recipient_key)
            sealed = self._cipher(token_key).encrypt(payload.model_dump_json(by_alias=True).encode("utf-8"))
        except GenomicChainError:
            raise
        except Exception as exc:
            raise EncryptionError(f"Access token generation failed: {exc}") from exc

        fingerprint = None
        if recipient_key is not None:
            raw = recipient_key.encode("utf-8") if isinstance(recipient_key, str) else bytes(recipient_key)
            fingerprint = key_fingerprint(raw)
        logger.info(f"[ENCRYPTION] Issued access token for tier {level} (recipient {fingerprint or 'owner'})")
        return AccessToken(
            access_level=level,
            encrypted_token=sealed,
            valid_until=valid_until,
            recipient_fingerprint=fingerprint,
        )

    def open_access_token(
        self,
        package: Union[EncryptedPackage, Mapping[str, Any], bytes],
        token: AccessToken,
        *,
        password: Optional[Password] = None,
        recipient_key: Optional[Password] = None,
        now: Optional[float] = None,
    ) -> AccessTokenPayload:
        """Open a token with the recipient key (or the owner's password)."""
        if (password is None) == (recipient_key is None):
            raise InvalidParameterError("Provide exactly one of password or recipient_key")
        level = _validate_level(token.access_level)
        package = EncryptedPackage.coerce(package)

        master_key = None
        if password is not None:
            _require_password(password)
            master_key = self._master_key(password, package.master_salt)
        else:
            _require_password(recipient_key, "Recipient key")
        token_key = self._token_key(package, level, master_key=master_key, recipient_key=recipient_key)

        try:
            plaintext = self._cipher(token_key).decrypt(token.encrypted_token)
        except IntegrityError:
            raise AuthenticationError("Access token authentication failed") from None
        payload = AccessTokenPayload.model_validate_json(plaintext)

        current = time.time() if now is None else now
        if current > payload.valid_until:
            raise AccessTokenExpiredError(payload.valid_until, current)
        return payload

    def decrypt_with_token(
        self,
        package: Union[EncryptedPackage, Mapping[str, Any], bytes],
        token: AccessToken,
        *,
        password: Optional[Password] = None,
        recipient_key: Optional[Password] = None,
        now: Optional[float] = None,
    ) -> DecryptedTier:
        """Decrypt the tier a token grants, without the owner's master password."""
        package = EncryptedPackage.coerce(package)
        payload = self.open_access_token(
            package, token, password=password, recipient_key=recipient_key, now=now
        )
        level = payload.access_level
        if level not in package.encrypted_tiers:
            raise AccessLevelUnavailableError(level)
        if not constant_time_equals(package.access_keys[level].salt, payload.tier_salt):
            raise AuthenticationError("Access token does not belong to this package")
        try:
            data = self._open_tier(package.encrypted_tiers[level], payload.tier_key)
        except GenomicChainError:
            raise
        except Exception as exc:
            raise DecryptionError(f"Decryption failed: {exc}") from exc

        logger.info(f"[ENCRYPTION] Decrypted tier {level} with access token")
        return DecryptedTier(
            data=data,
            access_level=level,
            metadata={"grantedUntil": payload.valid_until, "decryptedAt": time.time()},
        )

    # ── Integrity and password helpers ──

    generate_checksum = staticmethod(generate_checksum)
    verify_integrity = staticmethod(verify_integrity)

    def check_password_policy(self, password: Password) -> List[str]:
        """Policy violations for ``password``; empty when it complies."""
        policy = self.config.password_policy
        text = password.decode("utf-8", "replace") if isinstance(password, (bytes, bytearray)) else password
        violations: List[str] = []
        if len(text) < policy.min_length:
            violations.append(f"shorter than {policy.min_length} characters")
        if policy.require_uppercase and not re.search(r"[A-Z]", text):
            violations.append("missing an uppercase letter")
        if policy.require_lowercase and not re.search(r"[a-z]", text):
            violations.append("missing a lowercase letter")
        if policy.require_numbers and not re.search(r"\d", text):
            violations.append("missing a digit")
        if policy.require_special_chars and not re.search(r"[^A-Za-z0-9]", text):
            violations.append("missing a special character")
        lowered = text.lower()
        for pattern in policy.forbidden_patterns:
            if pattern.lower() in lowered:
                violations.append(f"contains forbidden pattern {pattern!r}")
        return violations

    @staticmethod
    def generate_secure_password(length: int = 32) -> str:
        if length < 8:
            raise InvalidParameterError("Generated passwords must be at least 8 characters")
        return "".join(secrets.choice(SECURE_PASSWORD_ALPHABET) for _ in range(length))

    @staticmethod
    def analyze_password_strength(password: str) -> PasswordStrength:
        has_lower = bool(re.search(r"[a-z]", password))
        has_upper = bool(re.search(r"[A-Z]", password))
        has_digit = bool(re.search(r"\d", password))
        has_special = bool(re.search(r"[^A-Za-z0-9]", password))

        charset = 0
        if has_lower:
            charset += 26
        if has_upper:
            charset += 26
        if has_digit:
            charset += 10
        if has_special:
            charset += 32
        entropy = len(password) * math.log2(charset) if charset else 0.0

        length = len(password)
        if entropy >= 60 and length >= 12:
            strength = "very_strong"
        elif entropy >= 50 and length >= 10:
            strength = "strong"
        elif entropy >= 40 and length >= 8:
            strength = "medium"
        elif entropy >= 30:
            strength = "weak"
        else:
            strength = "very_weak"

        return PasswordStrength(
            length=len(password),
            has_lowercase=has_lower,
            has_uppercase=has_upper,
            has_numbers=has_digit,
            has_special_chars=has_special,
            entropy=round(entropy, 2),
            strength=strength,
        )
