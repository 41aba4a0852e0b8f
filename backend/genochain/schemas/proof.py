"""
Proof record and verification result schemas.

ProofKind and ALGORITHM_TAGS are the single source of truth shared by the
generators and the verifier. The byte sizes are part of the ledger contract:
the commitment hash is exactly 32 bytes and the parameter block exactly 256.
"""

from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from genochain.core.errors import ProofStructureError

COMMITMENT_HASH_BYTES: int = 32
PARAMETER_BLOCK_BYTES: int = 256


class ProofKind(IntEnum):
    GENE_PRESENCE = 1
    GENE_ABSENCE = 2
    GENE_VARIANT = 3
    AGGREGATE = 4


ALGORITHM_TAGS: Dict[ProofKind, str] = {
    ProofKind.GENE_PRESENCE: "simplified-zk-snark",
    ProofKind.GENE_ABSENCE: "simplified-zk-snark-absence",
    ProofKind.GENE_VARIANT: "simplified-zk-snark-variant",
    ProofKind.AGGREGATE: "simplified-zk-snark-aggregate",
}

# ProofKind -> ClaimKind value
CLAIM_KINDS: Dict[ProofKind, str] = {
    ProofKind.GENE_PRESENCE: "gene_presence",
    ProofKind.GENE_ABSENCE: "gene_absence",
    ProofKind.GENE_VARIANT: "gene_variant",
    ProofKind.AGGREGATE: "aggregate",
}


class ProofModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )


class CommitmentOpening(ProofModel):
    """What the prover must keep to open the commitment later. Never published."""
    nonce: bytes
    value_hash: bytes
    commitment: bytes


class ProofRecord(ProofModel):
    model_config = ConfigDict(frozen=True)

    proof_kind: ProofKind
    commitment_hash: bytes
    parameter_block: bytes
    generated_at: float
    metadata: Dict[str, Any] = Field(default_factory=dict)
    opening: Optional[CommitmentOpening] = Field(default=None, exclude=True, repr=False)

    def contract_arguments(self) -> Dict[str, List[int]]:
        """Byte arrays handed to the ledger collaborator."""
        return {
            "proofHash": list(self.commitment_hash),
            "parameters": list(self.parameter_block),
        }

    @classmethod
    def coerce(cls, record: Union["ProofRecord", Mapping[str, Any]]) -> "ProofRecord":
        if isinstance(record, cls):
            return record
        if not isinstance(record, Mapping):
            raise ProofStructureError(f"Expected a proof record, got {type(record).__name__}")
        try:
            return cls.model_validate(dict(record))
        except ValidationError as exc:
            raise ProofStructureError(
                "Malformed proof record",
                {"errors": [error["msg"] for error in exc.errors()]},
            ) from exc


class VerificationResult(ProofModel):
    valid: bool
    reason: Optional[str] = None
    proof_kind: Optional[int] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class BatchVerificationReport(ProofModel):
    results: List[VerificationResult]
    total: int
    valid: int
    invalid: int
    success_rate: float
    error_types: Dict[str, int] = Field(default_factory=dict)
