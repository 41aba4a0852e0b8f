"""
Shared proof generation pipeline.

Every generator runs the same steps and only supplies the kind-specific
pieces (snapshot, witness search, public parameters):

  1. validate the dataset and claim
  2. build a privacy-reduced snapshot of the dataset
  3. search for a witness; no witness means ClaimNotSatisfiedError
  4. commit to the snapshot under a fresh (or supplied) nonce
  5. hash the canonical claim
  6. encode the 256-byte parameter block
  7. hash {kind, commitment, claim hash, public inputs} into the 32-byte
     proof hash

The timestamp is kept out of the proof hash, so a fixed nonce gives a
deterministic proof hash.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type, Union

from genochain.core.config import ProofConfig, settings
from genochain.core.crypto.commitment import CommitmentScheme, canonical_json, sha256
from genochain.core.errors import InvalidDataError
from genochain.core.proofs.parameters import COMMITMENT_PREFIX_BYTES, ProofParameters
from genochain.core.proofs.snapshots import BatchOutcome, batch_process
from genochain.core.proofs.verifier import ProofVerifier
from genochain.schemas.claims import ClaimModel, coerce_claim
from genochain.schemas.genomic import GeneticDataset
from genochain.schemas.proof import (
    ALGORITHM_TAGS,
    COMMITMENT_HASH_BYTES,
    CommitmentOpening,
    ProofKind,
    ProofRecord,
)

logger = logging.getLogger(__name__)

DatasetInput = Union[GeneticDataset, Mapping[str, Any]]


@dataclass(frozen=True)
class Witness:
    """Private evidence for a claim. Only ``confidence`` is ever published."""
    source: str
    confidence: float
    index: Optional[int] = None
    details: Dict[str, Any] = dc_field(default_factory=dict)


class ProofGenerator(ABC):
    proof_kind: ProofKind
    claim_model: Type[ClaimModel]
    # At least one of these must be present in the dataset.
    required_collections: Tuple[str, ...] = ()

    def __init__(
        self,
        config: Optional[ProofConfig] = None,
        commitment_scheme: Optional[CommitmentScheme] = None,
    ) -> None:
        self.config = config or settings.proof_config()
        self._scheme = commitment_scheme or CommitmentScheme()

    @property
    def algorithm(self) -> str:
        return ALGORITHM_TAGS[self.proof_kind]

    # ── Kind-specific hooks ──

    def coerce_claim(self, claim: Any) -> ClaimModel:
        return coerce_claim(self.claim_model, claim)

    @abstractmethod
    def snapshot(self, dataset: GeneticDataset, claim: ClaimModel) -> Any:
        """Privacy-reduced view committed to instead of raw values."""

    @abstractmethod
    def find_witness(self, dataset: GeneticDataset, claim: ClaimModel) -> Witness:
        """Locate evidence or raise ClaimNotSatisfiedError."""

    def default_options(self) -> Dict[str, Any]:
        return {"privacyLevel": self.config.privacy_level}

    def parameter_extras(self, claim: ClaimModel, witness: Witness, options: Dict[str, Any]) -> Dict[str, Any]:
        return {"options": options}

    def public_inputs(self, claim: ClaimModel, witness: Witness) -> Dict[str, Any]:
        return {}

    def record_metadata(self, claim: ClaimModel, witness: Witness) -> Dict[str, Any]:
        return {}

    # ── Pipeline ──

    def validate_dataset(self, dataset: GeneticDataset) -> None:
        if self.required_collections and not dataset.has_any(*self.required_collections):
            raise InvalidDataError(
                f"Dataset must contain at least one of: {', '.join(self.required_collections)}"
            )

    def generate(
        self,
        dataset: DatasetInput,
        claim: Any,
        *,
        options: Optional[Dict[str, Any]] = None,
        nonce: Optional[bytes] = None,
        timestamp: Optional[float] = None,
    ) -> ProofRecord:
        """
        Build a proof record for ``claim`` over ``dataset``.

        Raises:
            InvalidDataError: malformed dataset or claim.
            ClaimNotSatisfiedError: the dataset holds no evidence for the claim.
            ParameterOverflowError: options too large for the parameter block.
        """
        model = GeneticDataset.from_input(dataset)
        claim = self.coerce_claim(claim)
        self.validate_dataset(model)

        witness = self.find_witness(model, claim)
        commitment = self._scheme.commit(self.snapshot(model, claim), nonce)
        claim_hash = claim.claim_hash()
        generated_at = time.time() if timestamp is None else timestamp

        merged = {**self.default_options(), **(options or {})}
        parameters = ProofParameters(
            algorithm=self.algorithm,
            proof_kind=self.proof_kind,
            claim_hash=claim_hash,
            commitment_prefix=commitment.commitment_hash[:COMMITMENT_PREFIX_BYTES],
            timestamp=generated_at,
            extras=self.parameter_extras(claim, witness, merged),
        )
        parameter_block = parameters.to_bytes()

        proof_hash = sha256(canonical_json({
            "proofKind": int(self.proof_kind),
            "commitment": commitment.commitment_hash.hex(),
            "claimHash": claim_hash.hex(),
            "publicInputs": self.public_inputs(claim, witness),
        }).encode("utf-8"))[:COMMITMENT_HASH_BYTES]

        logger.info(
            f"[PROOF] Generated {self.proof_kind.name} proof "
            f"(hash {proof_hash.hex()[:16]}, confidence {witness.confidence})"
        )
        return ProofRecord(
            proof_kind=self.proof_kind,
            commitment_hash=proof_hash,
            parameter_block=parameter_block,
            generated_at=generated_at,
            metadata={
                "algorithm": self.algorithm,
                "version": self.config.version,
                "privacyLevel": merged.get("privacyLevel", self.config.privacy_level),
                **self.record_metadata(claim, witness),
            },
            opening=CommitmentOpening(
                nonce=commitment.nonce,
                value_hash=commitment.value_hash,
                commitment=commitment.commitment_hash,
            ),
        )

    def verify_locally(self, record: ProofRecord, claim: Any) -> bool:
        return ProofVerifier(self.config).verify(record, self.coerce_claim(claim)).valid

    def generate_batch(
        self,
        dataset: DatasetInput,
        claims: Sequence[Any],
        fail_fast: bool = False,
    ) -> List[BatchOutcome]:
        """One proof per claim over the same dataset; failures captured per claim."""
        model = GeneticDataset.from_input(dataset)
        return batch_process(
            list(claims),
            lambda claim: self.generate(model, claim),
            batch_size=self.config.batch_size,
            fail_fast=fail_fast,
        )
