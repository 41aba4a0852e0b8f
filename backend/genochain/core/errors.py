"""
GenomicChain error taxonomy.

Every failure the core raises derives from GenomicChainError so that callers
(storage and ledger collaborators, CLIs) can catch one type. Expected
verification mismatches are NOT errors: the verifier reports them as
VerificationResult(valid=False, reason=...). Raising is reserved for
malformed input, refused claims and cryptographic failures.

Messages never contain passwords, keys or dataset contents.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GenomicChainError(Exception):
    """Base class for all errors raised by the genochain core."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details: Dict[str, Any] = details or {}
        super().__init__(message)


class InvalidDataError(GenomicChainError):
    """Dataset or claim is missing, empty, or not a well-formed record."""


class InvalidParameterError(GenomicChainError):
    """A cryptographic or configuration parameter is out of range."""


class InvalidAccessLevelError(GenomicChainError):
    """Requested tier is not one of 1, 2, 3."""

    def __init__(self, access_level: Any) -> None:
        self.access_level = access_level
        super().__init__(
            f"Invalid access level {access_level!r}: expected 1, 2 or 3",
            {"accessLevel": repr(access_level)},
        )


class AccessLevelUnavailableError(GenomicChainError):
    """Requested tier is valid but was not produced for this package."""

    def __init__(self, access_level: int) -> None:
        self.access_level = access_level
        super().__init__(
            f"Access level {access_level} not available in this package",
            {"accessLevel": access_level},
        )


class IntegrityError(GenomicChainError):
    """AEAD tag verification failed; no plaintext is released."""


class AuthenticationError(IntegrityError):
    """Wrong password or tampered package. Deliberately does not say which."""

    def __init__(self, message: str = "Authentication failed: wrong password or corrupted package") -> None:
        super().__init__(message)


class AccessTokenExpiredError(GenomicChainError):
    """Delegation token is past its validity window."""

    def __init__(self, valid_until: float, now: float) -> None:
        self.valid_until = valid_until
        self.now = now
        super().__init__(
            f"Access token expired at {valid_until:.0f} (now {now:.0f})",
            {"validUntil": valid_until, "now": now},
        )


class ClaimNotSatisfiedError(GenomicChainError):
    """The dataset holds no evidence for the claim; no proof is produced."""


class EncryptionError(GenomicChainError):
    """Unexpected failure while building an encrypted package."""


class DecryptionError(GenomicChainError):
    """Unexpected failure while opening an encrypted package."""


class ParameterOverflowError(GenomicChainError):
    """Encoded proof parameters do not fit the fixed-size parameter block."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(
            f"Proof parameters need {size} bytes but the block holds {limit}",
            {"size": size, "limit": limit},
        )


class ProofStructureError(GenomicChainError):
    """Proof record or parameter block is structurally malformed."""
