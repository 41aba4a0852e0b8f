"""
Proof factory: one entry point for every proof kind.

Kinds can be named by ProofKind, by their integer tag, or by the hyphenated
names used in API payloads ("gene-presence", "gene-absence",
"gene-variant", "aggregate").
"""

import logging
from typing import Dict, List, Optional, Type, Union

from genochain.core.config import ProofConfig
from genochain.core.errors import InvalidParameterError
from genochain.core.proofs.generators.aggregate import AggregateProofGenerator
from genochain.core.proofs.generators.base import ProofGenerator
from genochain.core.proofs.generators.presence import GeneAbsenceProofGenerator, GenePresenceProofGenerator
from genochain.core.proofs.generators.variant import GeneVariantProofGenerator
from genochain.core.proofs.verifier import ProofVerifier
from genochain.schemas.proof import ProofKind

logger = logging.getLogger(__name__)

KindName = Union[ProofKind, int, str]

_GENERATORS: Dict[ProofKind, Type[ProofGenerator]] = {
    ProofKind.GENE_PRESENCE: GenePresenceProofGenerator,
    ProofKind.GENE_ABSENCE: GeneAbsenceProofGenerator,
    ProofKind.GENE_VARIANT: GeneVariantProofGenerator,
    ProofKind.AGGREGATE: AggregateProofGenerator,
}

_NAMES: Dict[str, ProofKind] = {
    "gene-presence": ProofKind.GENE_PRESENCE,
    "gene-absence": ProofKind.GENE_ABSENCE,
    "gene-variant": ProofKind.GENE_VARIANT,
    "aggregate": ProofKind.AGGREGATE,
}


def resolve_kind(kind: KindName) -> ProofKind:
    if isinstance(kind, str):
        key = kind.strip().lower().replace("_", "-")
        if key in _NAMES:
            return _NAMES[key]
        raise InvalidParameterError(
            f"Unsupported proof type {kind!r}. Supported: {', '.join(_NAMES)}"
        )
    if isinstance(kind, bool):
        raise InvalidParameterError(f"Unsupported proof kind {kind!r}")
    try:
        return ProofKind(kind)
    except ValueError:
        raise InvalidParameterError(f"Unsupported proof kind {kind!r}") from None


class ProofFactory:

    @staticmethod
    def create_generator(kind: KindName, config: Optional[ProofConfig] = None) -> ProofGenerator:
        resolved = resolve_kind(kind)
        logger.debug(f"[PROOF] Creating {resolved.name} generator")
        return _GENERATORS[resolved](config)

    @staticmethod
    def create_verifier(config: Optional[ProofConfig] = None) -> ProofVerifier:
        return ProofVerifier(config)

    @staticmethod
    def supported_kinds() -> List[str]:
        return list(_NAMES)
