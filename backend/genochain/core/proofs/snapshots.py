"""
Privacy-reduced views and helpers shared by the proof generators.

Generators never commit to raw genetic values. They commit to one of the
snapshots below: a structure-only view with sensitive fields redacted, or
aggregate counts.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from concurrent import futures
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field

from genochain.core.crypto.commitment import canonical_json, sha256
from genochain.core.crypto.kdf import random_bytes
from genochain.core.errors import GenomicChainError, InvalidParameterError
from genochain.schemas.genomic import GeneticDataset, PrivacyLevel, Variant

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = (
    "sequence", "allele", "genotype", "phenotype",
    "patient_id", "sample_id", "individual_id",
    "dna", "rna", "protein", "mutation",
    "variant_call", "snp_data", "indel_data",
)
REDACTED = "<REDACTED>"
MAX_STRUCTURE_DEPTH: int = 3


def is_sensitive_field(name: str) -> bool:
    # patient_id, patientId and PATIENTID all match
    folded = name.lower().replace("_", "")
    return any(field.replace("_", "") in folded for field in SENSITIVE_FIELDS)


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def extract_structure(data: Any, depth: int = 0, max_depth: int = MAX_STRUCTURE_DEPTH) -> Any:
    """
    Shape of ``data`` without its values.

    Mappings keep their keys (sensitive ones redacted), lists become
    {type, length, sampleStructure} from their first element, and leaves
    become their JSON type name.
    """
    if depth > max_depth or not isinstance(data, (Mapping, list, tuple)):
        return _json_type(data)
    if isinstance(data, (list, tuple)):
        return {
            "type": "array",
            "length": len(data),
            "sampleStructure": extract_structure(data[0], depth + 1, max_depth) if data else None,
        }
    return {
        key: REDACTED if is_sensitive_field(str(key)) else extract_structure(value, depth + 1, max_depth)
        for key, value in data.items()
    }


def aggregate_snapshot(dataset: GeneticDataset) -> Dict[str, Any]:
    return {
        "totalVariants": len(dataset.variants),
        "totalGenes": len(dataset.genes),
        "totalSequences": len(dataset.sequences),
        "dataTypes": sorted(dataset.source().keys()),
    }


def variant_snapshot(variants: Sequence[Variant]) -> Dict[str, Any]:
    types: Counter = Counter()
    for variant in variants:
        kind = variant.classified_type()
        types[kind.value if kind else "unknown"] += 1
    records = [variant.model_dump(mode="json", by_alias=True, exclude_none=True) for variant in variants]
    return {
        "totalVariants": len(variants),
        "variantTypes": dict(types),
        "structure": extract_structure(records),
    }


def privacy_preserving_hash(
    dataset: GeneticDataset,
    privacy_level: Union[PrivacyLevel, str] = PrivacyLevel.MEDIUM,
    salt: Optional[bytes] = None,
) -> bytes:
    """
    high    hash of aggregate counts only
    medium  hash of the redacted structure
    low     hash of the full dataset with a salt (random when not given)
    """
    try:
        level = PrivacyLevel(privacy_level)
    except ValueError:
        raise InvalidParameterError(f"Invalid privacy level {privacy_level!r}") from None

    if level == PrivacyLevel.HIGH:
        return sha256(canonical_json(aggregate_snapshot(dataset)).encode("utf-8"))
    if level == PrivacyLevel.MEDIUM:
        return sha256(canonical_json(extract_structure(dataset.source())).encode("utf-8"))
    salt = salt if salt is not None else random_bytes(16)
    return sha256(canonical_json(dataset.source()).encode("utf-8") + salt.hex().encode("ascii"))


def generate_data_id(dataset: GeneticDataset, owner: str) -> str:
    """Deterministic 16-byte id binding a dataset's structure to an owner address."""
    data_hash = privacy_preserving_hash(dataset, PrivacyLevel.MEDIUM)
    owner_hash = sha256(owner.encode("utf-8"))
    return sha256(data_hash + owner_hash)[:16].hex()


def generate_proof_metadata(
    proof_type: str,
    *,
    version: str = "1.0.0",
    algorithm: str = "simplified-zk-snark",
    generator: str = "genomic-chain",
    privacy_level: str = "high",
    valid_for: Optional[int] = None,
) -> Dict[str, Any]:
    now = int(time.time())
    return {
        "proofType": proof_type,
        "version": version,
        "algorithm": algorithm,
        "timestamp": now,
        "generator": generator,
        "privacyLevel": privacy_level,
        "validUntil": now + valid_for if valid_for else None,
    }


# ═══════════════════════════════════════════════════════════════════════════════
# DATASET VALIDATION
# ═══════════════════════════════════════════════════════════════════════════════

class DataValidationReport(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


def validate_genetic_data(data: Any) -> DataValidationReport:
    """
    Lenient pre-flight check of a raw dataset.

    Errors make a dataset unusable for proofs; warnings flag records that
    searches will likely skip.
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(data, Mapping):
        return DataValidationReport(valid=False, errors=["Genetic data must be a keyed record"])

    if not any(key in data for key in ("variants", "genes", "sequences", "phenotypes")):
        errors.append("Genetic data must contain at least one of: variants, genes, sequences, or phenotypes")

    variants = data.get("variants")
    if variants is not None:
        if not isinstance(variants, list):
            errors.append("Variants must be a list")
        else:
            for index, variant in enumerate(variants):
                if not isinstance(variant, Mapping):
                    errors.append(f"Variant at index {index} is not a keyed record")
                    continue
                if not variant.get("type"):
                    warnings.append(f"Variant at index {index} missing type field")
                if not variant.get("gene") and not variant.get("chromosome"):
                    warnings.append(f"Variant at index {index} missing gene or chromosome reference")

    genes = data.get("genes")
    if genes is not None:
        if not isinstance(genes, list):
            errors.append("Genes must be a list")
        else:
            for index, gene in enumerate(genes):
                if not isinstance(gene, Mapping) or not (gene.get("symbol") or gene.get("name")):
                    warnings.append(f"Gene at index {index} missing symbol or name")

    return DataValidationReport(valid=not errors, errors=errors, warnings=warnings)


# ═══════════════════════════════════════════════════════════════════════════════
# BATCH PROCESSING
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BatchOutcome:
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def batch_process(
    items: Sequence[Any],
    processor: Callable[[Any], Any],
    batch_size: int = 10,
    fail_fast: bool = False,
) -> List[BatchOutcome]:
    """
    Run ``processor`` over ``items`` in batches of ``batch_size`` workers.

    Domain failures are captured per item (order preserved) unless
    ``fail_fast`` is set, in which case the first one propagates.
    """
    if batch_size <= 0:
        raise InvalidParameterError("batch_size must be positive")

    def run(item: Any) -> BatchOutcome:
        try:
            return BatchOutcome(value=processor(item))
        except GenomicChainError as exc:
            if fail_fast:
                raise
            return BatchOutcome(error=f"{type(exc).__name__}: {exc}")

    outcomes: List[BatchOutcome] = []
    for start in range(0, len(items), batch_size):
        batch = list(items[start:start + batch_size])
        with futures.ThreadPoolExecutor(max_workers=len(batch)) as ex:
            outcomes.extend(ex.map(run, batch))
    failed = sum(1 for outcome in outcomes if not outcome.ok)
    if failed:
        logger.warning(f"[PROOF] Batch finished with {failed}/{len(outcomes)} failures")
    return outcomes
