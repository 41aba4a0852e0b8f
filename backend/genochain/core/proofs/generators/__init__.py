from genochain.core.proofs.generators.aggregate import AggregateProofGenerator
from genochain.core.proofs.generators.base import ProofGenerator, Witness
from genochain.core.proofs.generators.presence import GeneAbsenceProofGenerator, GenePresenceProofGenerator
from genochain.core.proofs.generators.variant import GeneVariantProofGenerator

__all__ = [
    "ProofGenerator",
    "Witness",
    "GenePresenceProofGenerator",
    "GeneAbsenceProofGenerator",
    "GeneVariantProofGenerator",
    "AggregateProofGenerator",
]
