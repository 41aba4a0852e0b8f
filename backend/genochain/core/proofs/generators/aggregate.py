"""
Aggregate statistic proofs.

The query computes a raw value over the dataset, the statistic reduces it,
and the reduced value is what gets published in the parameter block:

  count             floor(value)
  percentage        round(value / total * 100), halves rounded up
  ratio             value / total (6 decimal places)
  above_threshold   1 if value > threshold else 0
  below_threshold   1 if value < threshold else 0
  range             1 if min <= value <= max else 0

population_frequency is a placeholder estimate (0.1 when the target variant
is present, else 0.0) until a population reference is wired in.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from genochain.core.errors import ClaimNotSatisfiedError
from genochain.core.proofs.generators.base import ProofGenerator, Witness
from genochain.core.proofs.snapshots import aggregate_snapshot
from genochain.schemas.claims import AggregateClaim, AggregateQueryType, AggregateStatistic
from genochain.schemas.genomic import GeneticDataset
from genochain.schemas.proof import ProofKind

PRESENT_FREQUENCY: float = 0.1
TARGET_VARIANT_KEYS = ("gene", "type", "rsId", "chromosome")
RATIO_PRECISION: int = 6

Number = Union[int, float]


@dataclass(frozen=True)
class QueryValue:
    value: float
    total: Optional[float]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def apply_statistic(claim: AggregateClaim, value: float, total: Optional[float]) -> Number:
    statistic = claim.statistic
    if statistic == AggregateStatistic.COUNT:
        return int(math.floor(value))
    if statistic == AggregateStatistic.PERCENTAGE:
        return _round_half_up(value / total * 100) if total else 0
    if statistic == AggregateStatistic.RATIO:
        return round(value / total, RATIO_PRECISION) if total else 0.0
    if statistic == AggregateStatistic.ABOVE_THRESHOLD:
        return 1 if value > claim.threshold else 0
    if statistic == AggregateStatistic.BELOW_THRESHOLD:
        return 1 if value < claim.threshold else 0
    bounds = claim.value_range
    return 1 if bounds.min <= value <= bounds.max else 0


def _matches_filters(record: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    return all(record.get(key) == expected for key, expected in filters.items())


def _matches_target(record: Mapping[str, Any], target: Mapping[str, Any]) -> bool:
    return all(
        record.get(key) == target[key]
        for key in TARGET_VARIANT_KEYS
        if target.get(key) is not None
    )


def shannon_diversity(dataset: GeneticDataset) -> float:
    counts: Counter = Counter()
    for variant in dataset.variants:
        kind = variant.classified_type()
        if kind is not None:
            counts[kind] += 1
    total = sum(counts.values())
    if not total:
        return 0.0
    return -sum((n / total) * math.log2(n / total) for n in counts.values())


class AggregateProofGenerator(ProofGenerator):
    proof_kind = ProofKind.AGGREGATE
    claim_model = AggregateClaim

    def default_options(self) -> Dict[str, Any]:
        return {
            "precision": self.config.aggregate_precision,
            "confidenceLevel": self.config.aggregate_confidence_level,
            **super().default_options(),
        }

    def query(self, dataset: GeneticDataset, claim: AggregateClaim) -> QueryValue:
        raw_variants = [v for v in dataset.source().get("variants") or [] if isinstance(v, Mapping)]
        query_type = claim.query_type

        if query_type == AggregateQueryType.VARIANT_COUNT:
            matching = raw_variants
            if claim.filters:
                matching = [v for v in raw_variants if _matches_filters(v, claim.filters)]
            return QueryValue(len(matching), len(raw_variants))

        if query_type == AggregateQueryType.GENE_PRESENCE_COUNT:
            targets = list(dict.fromkeys(claim.target_genes))
            known = {g.symbol for g in dataset.genes} | {g.name for g in dataset.genes}
            known |= {v.gene for v in dataset.variants}
            known.discard(None)
            present = [gene for gene in targets if gene in known]
            return QueryValue(len(present), len(targets))

        if query_type == AggregateQueryType.DIVERSITY_INDEX:
            return QueryValue(shannon_diversity(dataset), None)

        found = any(_matches_target(v, claim.target_variant) for v in raw_variants)
        return QueryValue(PRESENT_FREQUENCY if found else 0.0, 1.0)

    @staticmethod
    def data_size(dataset: GeneticDataset) -> int:
        return len(dataset.variants) + len(dataset.genes) + len(dataset.sequences)

    def snapshot(self, dataset: GeneticDataset, claim: AggregateClaim) -> Any:
        return aggregate_snapshot(dataset)

    def find_witness(self, dataset: GeneticDataset, claim: AggregateClaim) -> Witness:
        size = self.data_size(dataset)
        if size == 0:
            raise ClaimNotSatisfiedError("Dataset has no data points to aggregate")
        computed = self.query(dataset, claim)
        return Witness(
            source="aggregate",
            confidence=self.config.aggregate_confidence_level,
            details={
                "result": apply_statistic(claim, computed.value, computed.total),
                "dataSize": size,
            },
        )

    def parameter_extras(self, claim: AggregateClaim, witness: Witness, options: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "statisticType": claim.statistic.value,
            "result": witness.details["result"],
            "dataSize": witness.details["dataSize"],
            "options": options,
        }

    def public_inputs(self, claim: AggregateClaim, witness: Witness) -> Dict[str, Any]:
        return {
            "queryType": claim.query_type.value,
            "statistic": claim.statistic.value,
            "result": witness.details["result"],
            "dataSize": witness.details["dataSize"],
        }

    def record_metadata(self, claim: AggregateClaim, witness: Witness) -> Dict[str, Any]:
        return {
            "queryType": claim.query_type.value,
            "statistic": claim.statistic.value,
            "threshold": claim.threshold,
            "result": witness.details["result"],
            "dataSize": witness.details["dataSize"],
            "confidence": witness.confidence,
        }
