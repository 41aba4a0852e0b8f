"""
Proof verification against public claims.

Checks, in order:

  1. structure   known kind, 32-byte proof hash, 256-byte parameter block
                 (violations raise ProofStructureError)
  2. claim kind  the claim is of the kind the record was generated for
  3. claim hash  constant-time comparison with the hash in the block
  4. per kind    variant type, or statistic and a positive data size
  5. algorithm   tag matches the proof kind
  6. freshness   optional max age; strict mode adds the configured max age
                 and a Shannon entropy floor on the proof hash

Everything after step 1 is an expected mismatch and comes back as
VerificationResult(valid=False, reason=...).

A valid result means the record is CONSISTENT with the claim. It does not
prove the generator computed the commitment honestly: the generator is
trusted.

Verification keeps no state, so verifying the same input twice gives the
same answer.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from genochain.core.config import ProofConfig, settings
from genochain.core.crypto.commitment import constant_time_equals, shannon_entropy
from genochain.core.errors import GenomicChainError, ProofStructureError
from genochain.core.proofs.parameters import ProofParameters
from genochain.schemas.claims import ClaimModel, parse_claim
from genochain.schemas.proof import (
    ALGORITHM_TAGS,
    CLAIM_KINDS,
    COMMITMENT_HASH_BYTES,
    PARAMETER_BLOCK_BYTES,
    BatchVerificationReport,
    ProofKind,
    ProofRecord,
    VerificationResult,
)

logger = logging.getLogger(__name__)

RecordInput = Union[ProofRecord, Mapping[str, Any]]
ClaimInput = Union[ClaimModel, Mapping[str, Any]]


def _invalid(reason: str, kind: Optional[int] = None, **details: Any) -> VerificationResult:
    return VerificationResult(valid=False, reason=reason, proof_kind=kind, details=details)


class ProofVerifier:
    """
    Usage:
        verifier = ProofVerifier()
        result = verifier.verify(record, claim)
        report = verifier.batch_verify(records, claims)
    """

    def __init__(self, config: Optional[ProofConfig] = None) -> None:
        self.config = config or settings.proof_config()

    @staticmethod
    def check_structure(record: RecordInput) -> ProofRecord:
        record = ProofRecord.coerce(record)
        if len(record.commitment_hash) != COMMITMENT_HASH_BYTES:
            raise ProofStructureError(
                f"Proof hash must be {COMMITMENT_HASH_BYTES} bytes, got {len(record.commitment_hash)}"
            )
        if len(record.parameter_block) != PARAMETER_BLOCK_BYTES:
            raise ProofStructureError(
                f"Parameter block must be {PARAMETER_BLOCK_BYTES} bytes, got {len(record.parameter_block)}"
            )
        return record

    def verify(
        self,
        record: RecordInput,
        claim: ClaimInput,
        *,
        strict: bool = False,
        max_age: Optional[float] = None,
        min_confidence: Optional[float] = None,
        now: Optional[float] = None,
    ) -> VerificationResult:
        """
        Raises:
            ProofStructureError: malformed record or parameter block.
            InvalidDataError: malformed claim.
        """
        record = self.check_structure(record)
        params = ProofParameters.from_bytes(record.parameter_block)
        kind = int(record.proof_kind)
        if isinstance(claim, Mapping) and "kind" not in claim:
            # untagged claims are read as the record's own kind
            claim = {"kind": CLAIM_KINDS[record.proof_kind], **claim}
        claim = parse_claim(claim)

        if params.proof_kind != record.proof_kind:
            return _invalid("proof kind mismatch", kind)
        if claim.kind != CLAIM_KINDS[record.proof_kind]:
            return _invalid("claim kind mismatch", kind, expected=CLAIM_KINDS[record.proof_kind], actual=claim.kind)
        if not constant_time_equals(claim.claim_hash(), params.claim_hash):
            return _invalid("claim mismatch", kind)

        kind_failure = self._check_kind(record.proof_kind, params, claim, min_confidence)
        if kind_failure is not None:
            return kind_failure

        if params.algorithm != ALGORITHM_TAGS[record.proof_kind]:
            return _invalid("algorithm mismatch", kind, algorithm=params.algorithm)

        current = time.time() if now is None else now
        age = current - params.timestamp
        if max_age is not None and age > max_age:
            return _invalid("proof too old", kind, age=age)
        if strict:
            if age > self.config.max_proof_age_seconds:
                return _invalid("proof too old", kind, age=age)
            entropy = shannon_entropy(record.commitment_hash)
            if entropy < self.config.min_hash_entropy:
                return _invalid("insufficient entropy", kind, entropy=entropy)

        return VerificationResult(
            valid=True,
            proof_kind=kind,
            details={
                "algorithm": params.algorithm,
                "version": params.version,
                "timestamp": params.timestamp,
                "privacyLevel": params.extras.get("options", {}).get("privacyLevel"),
            },
        )

    def _check_kind(
        self,
        proof_kind: ProofKind,
        params: ProofParameters,
        claim: ClaimModel,
        min_confidence: Optional[float],
    ) -> Optional[VerificationResult]:
        kind = int(proof_kind)
        if proof_kind == ProofKind.GENE_VARIANT:
            if params.extras.get("variantType") != claim.type.value:
                return _invalid("variant type mismatch", kind)
            if min_confidence is not None:
                threshold = params.extras.get("options", {}).get("confidenceThreshold", 0)
                if threshold < min_confidence:
                    return _invalid("confidence below minimum", kind, threshold=threshold)
        elif proof_kind == ProofKind.AGGREGATE:
            if params.extras.get("statisticType") != claim.statistic.value:
                return _invalid("statistic mismatch", kind)
            data_size = params.extras.get("dataSize")
            if not isinstance(data_size, int) or isinstance(data_size, bool) or data_size <= 0:
                return _invalid("invalid data size", kind)
        return None

    def batch_verify(
        self,
        records: Sequence[RecordInput],
        claims: Sequence[ClaimInput],
        *,
        fail_fast: bool = False,
        **options: Any,
    ) -> BatchVerificationReport:
        """
        Verify records pairwise against claims.

        Malformed items count as invalid (keyed by error type) unless
        ``fail_fast`` is set, in which case the first error propagates.
        """
        results: List[VerificationResult] = []
        for index, record in enumerate(records):
            try:
                if index >= len(claims):
                    raise ProofStructureError(f"No claim supplied for record {index}")
                results.append(self.verify(record, claims[index], **options))
            except GenomicChainError as exc:
                if fail_fast:
                    raise
                results.append(_invalid(type(exc).__name__, error=str(exc)))
        report = self.verification_stats(results)
        logger.info(f"[VERIFIER] Batch verified {report.valid}/{report.total} proofs")
        return report

    @staticmethod
    def verification_stats(results: Sequence[VerificationResult]) -> BatchVerificationReport:
        total = len(results)
        valid = sum(1 for result in results if result.valid)
        error_types: Dict[str, int] = dict(Counter(
            result.reason or "unknown" for result in results if not result.valid
        ))
        return BatchVerificationReport(
            results=list(results),
            total=total,
            valid=valid,
            invalid=total - valid,
            success_rate=valid / total if total else 0.0,
            error_types=error_types,
        )
