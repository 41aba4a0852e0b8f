"""
Tiered storage encryption.

Public API:
    - EncryptionManager:  Encrypt a dataset into access tiers, decrypt, delegate.
    - TierPartitioner:    Build the basic / detailed / full tier views.
"""

from genochain.storage.encryption import EncryptionManager, generate_checksum, verify_integrity
from genochain.storage.tiers import TierPartitioner, filter_sensitive

__all__ = [
    "EncryptionManager",
    "TierPartitioner",
    "filter_sensitive",
    "generate_checksum",
    "verify_integrity",
]
