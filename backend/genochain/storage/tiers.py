"""
Access-tier projections of a genetic dataset.

  Tier 1  basic      counts and histograms only, no individual record
  Tier 2  detailed   tier 1 plus privacy-filtered variants, a reduced gene
                     list and phenotypes
  Tier 3  full       the original dataset plus an ``accessLevel: 3`` marker

Projections only remove information. A custom tier supplied by the caller
replaces the computed one wholesale; the only checks are tier numbering and
JSON serializability.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from genochain.core.errors import InvalidDataError
from genochain.schemas.genomic import GeneticDataset, PrivacyLevel
from genochain.schemas.package import AccessTier, TierConfig

logger = logging.getLogger(__name__)

MEDIUM_REDACTED_FIELDS = ("sequence", "exactPosition", "individualId")
HIGH_PRIVACY_FIELDS = ("type", "chromosome", "gene")
GENE_LIST_FIELDS = ("symbol", "name", "chromosome")
FULL_TIER_MARKER = "accessLevel"


def filter_sensitive(records: Iterable[Mapping[str, Any]], level: Union[PrivacyLevel, str]) -> List[Dict[str, Any]]:
    """
    Project records down to what a privacy level allows.

    high    keep only type, chromosome, gene
    medium  drop sequence, exactPosition, individualId
    low     unchanged (copied)
    """
    level = PrivacyLevel(level)
    filtered: List[Dict[str, Any]] = []
    for record in records:
        if level == PrivacyLevel.HIGH:
            filtered.append({k: record[k] for k in HIGH_PRIVACY_FIELDS if k in record})
        elif level == PrivacyLevel.MEDIUM:
            filtered.append({k: v for k, v in record.items() if k not in MEDIUM_REDACTED_FIELDS})
        else:
            filtered.append(dict(record))
    return filtered


def _quality_metrics(dataset: GeneticDataset) -> Dict[str, Any]:
    qualities = [v.quality for v in dataset.variants if v.quality is not None]
    if not qualities:
        return {"count": 0}
    return {
        "count": len(qualities),
        "min": min(qualities),
        "max": max(qualities),
        "mean": round(sum(qualities) / len(qualities), 6),
    }


def general_statistics(dataset: GeneticDataset) -> Dict[str, Any]:
    variant_types: Counter = Counter()
    chromosomes: Counter = Counter()
    for variant in dataset.variants:
        kind = variant.classified_type()
        if kind is not None:
            variant_types[kind.value] += 1
        if variant.chromosome is not None:
            chromosomes[variant.chromosome] += 1
    return {
        "variantTypes": dict(variant_types),
        "chromosomeDistribution": dict(chromosomes),
        "qualityMetrics": _quality_metrics(dataset),
    }


def _ensure_serializable(level: int, view: Any) -> Dict[str, Any]:
    if not isinstance(view, Mapping):
        raise InvalidDataError(f"Custom tier {level} must be a keyed record")
    try:
        json.dumps(view, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise InvalidDataError(f"Custom tier {level} is not JSON serializable") from exc
    return dict(view)


class TierPartitioner:
    """Builds the tier views EncryptionManager encrypts."""

    def basic(self, dataset: GeneticDataset) -> Dict[str, Any]:
        source = dataset.source()
        return {
            "type": "basic",
            "totalVariants": len(dataset.variants),
            "totalGenes": len(dataset.genes),
            "dataTypes": sorted(source.keys()),
            "generalStats": general_statistics(dataset),
        }

    def detailed(self, dataset: GeneticDataset) -> Dict[str, Any]:
        source = dataset.source()
        view = self.basic(dataset)
        view.update({
            "type": "detailed",
            "filteredVariants": filter_sensitive(source.get("variants") or [], PrivacyLevel.MEDIUM),
            "geneList": [
                {k: gene[k] for k in GENE_LIST_FIELDS if k in gene}
                for gene in source.get("genes") or []
            ],
            "phenotypes": list(source.get("phenotypes") or []),
        })
        return view

    def full(self, dataset: GeneticDataset) -> Dict[str, Any]:
        view = dataset.source()
        if FULL_TIER_MARKER in view:
            raise InvalidDataError(f"Dataset must not carry the reserved key {FULL_TIER_MARKER!r}")
        view[FULL_TIER_MARKER] = int(AccessTier.FULL)
        return view

    def partition(
        self,
        dataset: GeneticDataset,
        tier_config: Optional[TierConfig] = None,
    ) -> Dict[int, Dict[str, Any]]:
        config = tier_config or TierConfig()
        builders = {
            AccessTier.BASIC: self.basic,
            AccessTier.DETAILED: self.detailed,
            AccessTier.FULL: self.full,
        }
        views: Dict[int, Dict[str, Any]] = {}
        for level in config.tiers:
            if level in config.custom_tiers:
                views[level] = _ensure_serializable(level, config.custom_tiers[level])
            else:
                views[level] = builders[AccessTier(level)](dataset)
        logger.debug(
            f"[TIERS] Built tiers {sorted(views)} "
            f"(custom: {sorted(set(config.custom_tiers) & set(views))})"
        )
        return views

    @staticmethod
    def strip_full_marker(view: Mapping[str, Any]) -> Dict[str, Any]:
        """Recover the original dataset from a tier 3 view."""
        return {k: v for k, v in view.items() if k != FULL_TIER_MARKER}
