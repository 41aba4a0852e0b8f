"""
Commitment-based genomic claim proofs.

Public API:
    - ProofFactory:       Build a generator or verifier by proof kind.
    - ProofVerifier:      Check proof records against public claims.
    - ProofParameters:    The fixed 256-byte parameter block codec.
    - Gene{Presence,Absence,Variant}ProofGenerator, AggregateProofGenerator
"""

from genochain.core.proofs.factory import ProofFactory
from genochain.core.proofs.generators import (
    AggregateProofGenerator,
    GeneAbsenceProofGenerator,
    GenePresenceProofGenerator,
    GeneVariantProofGenerator,
    ProofGenerator,
)
from genochain.core.proofs.parameters import ProofParameters
from genochain.core.proofs.verifier import ProofVerifier

__all__ = [
    "ProofFactory",
    "ProofVerifier",
    "ProofParameters",
    "ProofGenerator",
    "GenePresenceProofGenerator",
    "GeneAbsenceProofGenerator",
    "GeneVariantProofGenerator",
    "AggregateProofGenerator",
]
