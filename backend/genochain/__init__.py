"""
GenomicChain core: tiered genetic data encryption and genomic claim proofs.

Public API:
    - EncryptionManager:  Multi-tier AES-GCM encryption of genetic datasets.
    - ProofFactory:       Generators and verifier for presence, absence,
                          variant and aggregate claims.
    - settings:           Environment-driven configuration.
"""

from genochain.core.config import EncryptionConfig, ProofConfig, settings
from genochain.core.proofs import ProofFactory, ProofVerifier
from genochain.storage import EncryptionManager

__version__ = "0.1.0"

__all__ = [
    "EncryptionConfig",
    "EncryptionManager",
    "ProofConfig",
    "ProofFactory",
    "ProofVerifier",
    "settings",
]
