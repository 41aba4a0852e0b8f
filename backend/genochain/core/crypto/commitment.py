"""
Salted SHA-256 hash commitments.

═══════════════════════════════════════════════════════════════════════════════
CONSTRUCTION
═══════════════════════════════════════════════════════════════════════════════

  value_hash      = SHA256(canonical(value))
  commitment_hash = SHA256(value_hash ‖ nonce)        nonce: 32 random bytes

  canonical(value) is sorted-key, compact-separator JSON (UTF-8), so two
  structurally equal values commit identically regardless of key order.

═══════════════════════════════════════════════════════════════════════════════
PROPERTIES
═══════════════════════════════════════════════════════════════════════════════

  Binding:  computational, from SHA-256 collision resistance.
  Hiding:   only while nonces are large and never reused. A low-entropy value
            committed under a known nonce can be brute forced.

  This is a commitment, not a zero-knowledge proof. Proof records built on
  it let a verifier check consistency with a public claim; they do not
  demonstrate knowledge of a witness.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from pydantic import BaseModel

from genochain.core.crypto.kdf import random_bytes
from genochain.core.errors import InvalidParameterError

COMMITMENT_NONCE_BYTES: int = 32


# ═══════════════════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════════

def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def canonical_json(value: Any) -> str:
    """Deterministic JSON: sorted keys, no whitespace, NaN rejected."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
        default=_json_default,
    )


def canonical_bytes(value: Any) -> bytes:
    """Raw bytes and text pass through; anything else is canonical JSON. Merkle leaves only."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    return canonical_json(value).encode("utf-8")


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def constant_time_equals(a: bytes, b: bytes) -> bool:
    return hmac.compare_digest(bytes(a), bytes(b))


def shannon_entropy(data: bytes) -> float:
    """Shannon entropy in bits per byte over the byte histogram."""
    if not data:
        return 0.0
    total = len(data)
    return -sum(
        (count / total) * math.log2(count / total)
        for count in Counter(data).values()
    )


def merkle_root(items: Sequence[Any]) -> bytes:
    """
    Binary Merkle root over SHA-256 leaves.

    Leaves are hashes of canonical_bytes(item). An odd node at any level is
    paired with itself. An empty sequence yields SHA256(b"").
    """
    if not items:
        return sha256(b"")
    level = [sha256(canonical_bytes(item)) for item in items]
    while len(level) > 1:
        paired = []
        for i in range(0, len(level), 2):
            left = level[i]
            right = level[i + 1] if i + 1 < len(level) else left
            paired.append(sha256(left + right))
        level = paired
    return level[0]


# ═══════════════════════════════════════════════════════════════════════════════
# COMMITMENT SCHEME
# ═══════════════════════════════════════════════════════════════════════════════

def _value_hash(value: Any) -> bytes:
    # always JSON, so 1 and "1" hash apart
    return sha256(canonical_json(value).encode("utf-8"))


@dataclass(frozen=True)
class Commitment:
    commitment_hash: bytes
    nonce: bytes
    value_hash: bytes


class CommitmentScheme:
    """Commit to a value under a random nonce; open by revealing value and nonce."""

    def __init__(self, nonce_size: int = COMMITMENT_NONCE_BYTES) -> None:
        if nonce_size < 16:
            raise InvalidParameterError(f"Commitment nonce must be at least 16 bytes, got {nonce_size}")
        self.nonce_size = nonce_size

    def commit(self, value: Any, nonce: Optional[bytes] = None) -> Commitment:
        if nonce is None:
            nonce = random_bytes(self.nonce_size)
        elif not nonce:
            raise InvalidParameterError("Commitment nonce must not be empty")
        value_hash = _value_hash(value)
        return Commitment(
            commitment_hash=sha256(value_hash + nonce),
            nonce=bytes(nonce),
            value_hash=value_hash,
        )

    @staticmethod
    def verify(commitment_hash: bytes, value: Any, nonce: bytes) -> bool:
        recomputed = sha256(_value_hash(value) + nonce)
        return constant_time_equals(recomputed, commitment_hash)
