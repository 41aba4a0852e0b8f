"""
Gene variant proofs.

Candidates are variants whose gene and (classified) type match the claim,
drawn from ``variants``, ``sequences[].variants`` and a ``vcf`` list. The
best match wins:

  rsId                                      1.0
  position + allele                         0.95
  position                                  0.8
  chromosome + positionRange                0.7
  gene + type only                          0.6

A candidate whose known rsId, position, allele or chromosome contradicts
the claim is never evidence, not even at the gene + type level. This is
deliberately narrower than a bare gene + type fallback: a dataset holding
the claimed gene and type only at another rsId or position cannot prove
the claim, since the proof would otherwise vouch for a variant the
dataset does not contain.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from genochain.core.errors import ClaimNotSatisfiedError, GenomicChainError
from genochain.core.proofs.generators.base import ProofGenerator, Witness
from genochain.core.proofs.snapshots import variant_snapshot
from genochain.schemas.claims import GeneVariantClaim
from genochain.schemas.genomic import GeneticDataset, Variant
from genochain.schemas.proof import ProofKind, ProofRecord

logger = logging.getLogger(__name__)

RSID_CONFIDENCE: float = 1.0
POSITION_ALLELE_CONFIDENCE: float = 0.95
POSITION_CONFIDENCE: float = 0.8
RANGE_CONFIDENCE: float = 0.7
FUZZY_CONFIDENCE: float = 0.6


def _allele(variant: Variant) -> Optional[str]:
    return variant.extra("allele") or variant.alternate


def _contradicts(variant: Variant, claim: GeneVariantClaim) -> bool:
    if claim.rs_id and variant.rs_id and variant.rs_id != claim.rs_id:
        return True
    if claim.position is not None and variant.position is not None and variant.position != claim.position:
        return True
    allele = _allele(variant)
    if claim.allele and allele and allele != claim.allele:
        return True
    if claim.chromosome and variant.chromosome and variant.chromosome != claim.chromosome:
        return True
    if claim.position_range and variant.position is not None:
        if not claim.position_range.start <= variant.position <= claim.position_range.end:
            return True
    return False


def match_confidence(variant: Variant, claim: GeneVariantClaim) -> Optional[float]:
    """Confidence that ``variant`` evidences ``claim``; None when it cannot."""
    if variant.gene != claim.gene or variant.classified_type() != claim.type:
        return None
    if _contradicts(variant, claim):
        return None
    if claim.rs_id and variant.rs_id == claim.rs_id:
        return RSID_CONFIDENCE
    if claim.position is not None and variant.position == claim.position:
        if claim.allele and _allele(variant) == claim.allele:
            return POSITION_ALLELE_CONFIDENCE
        return POSITION_CONFIDENCE
    if claim.chromosome and claim.position_range and variant.chromosome == claim.chromosome \
            and variant.position is not None:
        return RANGE_CONFIDENCE
    return FUZZY_CONFIDENCE


class GeneVariantProofGenerator(ProofGenerator):
    proof_kind = ProofKind.GENE_VARIANT
    claim_model = GeneVariantClaim

    def default_options(self) -> Dict[str, Any]:
        return {
            "confidenceThreshold": self.config.variant_confidence_threshold,
            "includeQuality": False,
            **super().default_options(),
        }

    def snapshot(self, dataset: GeneticDataset, claim: GeneVariantClaim) -> Any:
        return variant_snapshot(dataset.all_variants())

    def find_witness(self, dataset: GeneticDataset, claim: GeneVariantClaim) -> Witness:
        best: Optional[Witness] = None
        for index, variant in enumerate(dataset.all_variants()):
            confidence = match_confidence(variant, claim)
            if confidence is not None and (best is None or confidence > best.confidence):
                best = Witness(source="variants", index=index, confidence=confidence)
                if confidence == RSID_CONFIDENCE:
                    break
        if best is None:
            raise ClaimNotSatisfiedError(
                f"No {claim.type.value} variant in {claim.gene} matches the claim"
            )
        return best

    def parameter_extras(self, claim: GeneVariantClaim, witness: Witness, options: Dict[str, Any]) -> Dict[str, Any]:
        return {"variantType": claim.type.value, "options": options}

    def public_inputs(self, claim: GeneVariantClaim, witness: Witness) -> Dict[str, Any]:
        return {"gene": claim.gene, "variantType": claim.type.value}

    def record_metadata(self, claim: GeneVariantClaim, witness: Witness) -> Dict[str, Any]:
        return {
            "targetVariant": {"gene": claim.gene, "rsId": claim.rs_id, "type": claim.type.value},
            "confidence": witness.confidence,
        }

    def generate_multi(
        self,
        dataset: Any,
        claims: Sequence[Any],
        strict: bool = False,
    ) -> List[ProofRecord]:
        """
        One proof per variant claim.

        With ``strict`` the first unsatisfied claim aborts the whole call;
        otherwise unsatisfied claims are skipped.
        """
        model = GeneticDataset.from_input(dataset)
        records: List[ProofRecord] = []
        for claim in claims:
            try:
                records.append(self.generate(model, claim))
            except GenomicChainError as exc:
                if strict:
                    raise
                logger.warning(f"[PROOF] Skipping variant claim: {type(exc).__name__}")
        return records
