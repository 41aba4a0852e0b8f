"""
Gene presence and gene absence proofs.

Both search the same places, most specific first:

  genes[].symbol / genes[].name                    confidence 1.0
  variants[].gene / variants[].symbol              confidence 0.9
  sequences[].annotations[].gene / .symbol         confidence 0.8

Presence needs a hit. Absence needs every searched collection to miss.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from genochain.core.errors import ClaimNotSatisfiedError
from genochain.core.proofs.generators.base import ProofGenerator, Witness
from genochain.core.proofs.snapshots import extract_structure
from genochain.schemas.claims import GeneAbsenceClaim, GenePresenceClaim
from genochain.schemas.genomic import GeneticDataset
from genochain.schemas.proof import ProofKind

logger = logging.getLogger(__name__)

GENE_COLLECTIONS = ("genes", "variants", "sequences")


def locate_gene(dataset: GeneticDataset, target: str) -> Optional[Witness]:
    for index, gene in enumerate(dataset.genes):
        if target in (gene.symbol, gene.name):
            return Witness(source="genes", index=index, confidence=1.0)

    for index, variant in enumerate(dataset.variants):
        if target in (variant.gene, variant.extra("symbol")):
            return Witness(source="variants", index=index, confidence=0.9)

    for index, record in enumerate(dataset.sequences):
        for annotation in record.annotations:
            if target in (annotation.gene, annotation.symbol):
                return Witness(source="sequences", index=index, confidence=0.8)

    return None


class GenePresenceProofGenerator(ProofGenerator):
    proof_kind = ProofKind.GENE_PRESENCE
    claim_model = GenePresenceClaim
    required_collections = GENE_COLLECTIONS

    def coerce_claim(self, claim: Any) -> GenePresenceClaim:
        if isinstance(claim, str):
            claim = {"targetGene": claim}
        return super().coerce_claim(claim)

    def default_options(self) -> Dict[str, Any]:
        return {"includeConfidence": False, **super().default_options()}

    def snapshot(self, dataset: GeneticDataset, claim: GenePresenceClaim) -> Any:
        return extract_structure(dataset.source())

    def find_witness(self, dataset: GeneticDataset, claim: GenePresenceClaim) -> Witness:
        witness = locate_gene(dataset, claim.target_gene)
        if witness is None:
            raise ClaimNotSatisfiedError(f"Gene {claim.target_gene} not found in dataset")
        logger.debug(f"[PROOF] Presence witness found in {witness.source}")
        return witness

    def public_inputs(self, claim: GenePresenceClaim, witness: Witness) -> Dict[str, Any]:
        return {"targetGene": claim.target_gene}

    def record_metadata(self, claim: GenePresenceClaim, witness: Witness) -> Dict[str, Any]:
        return {"targetGene": claim.target_gene, "confidence": witness.confidence}


class GeneAbsenceProofGenerator(ProofGenerator):
    proof_kind = ProofKind.GENE_ABSENCE
    claim_model = GeneAbsenceClaim
    required_collections = GENE_COLLECTIONS

    def coerce_claim(self, claim: Any) -> GeneAbsenceClaim:
        if isinstance(claim, str):
            claim = {"targetGene": claim}
        return super().coerce_claim(claim)

    def snapshot(self, dataset: GeneticDataset, claim: GeneAbsenceClaim) -> Any:
        return extract_structure(dataset.source())

    def find_witness(self, dataset: GeneticDataset, claim: GeneAbsenceClaim) -> Witness:
        if locate_gene(dataset, claim.target_gene) is not None:
            raise ClaimNotSatisfiedError(f"Gene {claim.target_gene} is present in dataset")
        return Witness(
            source="scan",
            confidence=1.0,
            details={
                "genesScanned": len(dataset.genes),
                "variantsScanned": len(dataset.variants),
                "sequencesScanned": len(dataset.sequences),
            },
        )

    def public_inputs(self, claim: GeneAbsenceClaim, witness: Witness) -> Dict[str, Any]:
        return {"targetGene": claim.target_gene, **witness.details}

    def record_metadata(self, claim: GeneAbsenceClaim, witness: Witness) -> Dict[str, Any]:
        return {"targetGene": claim.target_gene, "recordsScanned": sum(witness.details.values())}
