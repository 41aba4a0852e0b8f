"""
Cryptographic primitives for GenomicChain.

Public API:
    - KeyDerivation / derive_key:  PBKDF2-HMAC-SHA512 key derivation
    - AEADCipher:                  AES-GCM (128/192/256) authenticated encryption
    - wrap_key / unwrap_key:       Tier key sealing under the master key
    - CommitmentScheme:            Salted SHA-256 commitments
    - canonical_json, sha256, constant_time_equals, shannon_entropy, merkle_root
"""

from genochain.core.crypto.cipher import (
    AEADCipher,
    algorithm_for_key_size,
    key_size_for_algorithm,
    unwrap_key,
    wrap_key,
)
from genochain.core.crypto.commitment import (
    Commitment,
    CommitmentScheme,
    canonical_bytes,
    canonical_json,
    constant_time_equals,
    merkle_root,
    sha256,
    shannon_entropy,
)
from genochain.core.crypto.kdf import (
    KeyDerivation,
    derive_key,
    key_fingerprint,
    random_bytes,
)

__all__ = [
    "AEADCipher",
    "algorithm_for_key_size",
    "key_size_for_algorithm",
    "wrap_key",
    "unwrap_key",
    "Commitment",
    "CommitmentScheme",
    "canonical_bytes",
    "canonical_json",
    "constant_time_equals",
    "merkle_root",
    "sha256",
    "shannon_entropy",
    "KeyDerivation",
    "derive_key",
    "key_fingerprint",
    "random_bytes",
]
