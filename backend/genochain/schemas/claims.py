"""
Public claims that proofs are generated for and verified against.

ProofClaim is a tagged union discriminated on ``kind``. Each claim hashes to
a stable 32-byte value: SHA-256 of the canonical JSON of every field (absent
optionals as null), so two claims with the same fields hash identically
regardless of the order they were written in.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from genochain.core.crypto.commitment import canonical_json, sha256
from genochain.core.errors import InvalidDataError
from genochain.schemas.genomic import VariantType

# Variant kinds a variant claim may name.
CLAIMABLE_VARIANT_TYPES = frozenset({
    VariantType.SNP, VariantType.INDEL, VariantType.CNV, VariantType.SV, VariantType.STR,
})


class ClaimKind(str, Enum):
    GENE_PRESENCE = "gene_presence"
    GENE_ABSENCE = "gene_absence"
    GENE_VARIANT = "gene_variant"
    AGGREGATE = "aggregate"


class AggregateQueryType(str, Enum):
    VARIANT_COUNT = "variant_count"
    GENE_PRESENCE_COUNT = "gene_presence_count"
    DIVERSITY_INDEX = "diversity_index"
    POPULATION_FREQUENCY = "population_frequency"


class AggregateStatistic(str, Enum):
    COUNT = "count"
    PERCENTAGE = "percentage"
    RATIO = "ratio"
    ABOVE_THRESHOLD = "above_threshold"
    BELOW_THRESHOLD = "below_threshold"
    RANGE = "range"


class ClaimPart(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )


class ClaimModel(ClaimPart):
    """Base for the four claim kinds."""

    def canonical_fields(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def claim_hash(self) -> bytes:
        return sha256(canonical_json(self.canonical_fields()).encode("utf-8"))


class GenePresenceClaim(ClaimModel):
    kind: Literal["gene_presence"] = "gene_presence"
    target_gene: str = Field(..., min_length=1)


class GeneAbsenceClaim(ClaimModel):
    kind: Literal["gene_absence"] = "gene_absence"
    target_gene: str = Field(..., min_length=1)


class PositionRange(ClaimPart):
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> "PositionRange":
        if self.end < self.start:
            raise ValueError("positionRange.end must not precede start")
        return self


class GeneVariantClaim(ClaimModel):
    kind: Literal["gene_variant"] = "gene_variant"
    gene: str = Field(..., min_length=1)
    type: VariantType
    rs_id: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)
    allele: Optional[str] = None
    chromosome: Optional[str] = None
    position_range: Optional[PositionRange] = None

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("type")
    @classmethod
    def _claimable(cls, value: VariantType) -> VariantType:
        if value not in CLAIMABLE_VARIANT_TYPES:
            allowed = ", ".join(sorted(t.value for t in CLAIMABLE_VARIANT_TYPES))
            raise ValueError(f"variant type must be one of {allowed}")
        return value

    @field_validator("chromosome", mode="before")
    @classmethod
    def _chromosome_label(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ValueRange(ClaimPart):
    min: float
    max: float

    @model_validator(mode="after")
    def _ordered(self) -> "ValueRange":
        if self.max < self.min:
            raise ValueError("range.max must not be below range.min")
        return self


class AggregateClaim(ClaimModel):
    kind: Literal["aggregate"] = "aggregate"
    query_type: AggregateQueryType = Field(
        ...,
        validation_alias=AliasChoices("queryType", "query_type", "type"),
        serialization_alias="queryType",
    )
    statistic: AggregateStatistic
    threshold: Optional[float] = None
    value_range: Optional[ValueRange] = Field(
        default=None,
        validation_alias=AliasChoices("range", "value_range"),
        serialization_alias="range",
    )
    filters: Optional[Dict[str, Any]] = None
    target_genes: Optional[List[str]] = None
    target_variant: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _required_inputs(self) -> "AggregateClaim":
        if self.statistic in (AggregateStatistic.ABOVE_THRESHOLD, AggregateStatistic.BELOW_THRESHOLD):
            if self.threshold is None:
                raise ValueError(f"{self.statistic.value} needs a threshold")
        if self.statistic == AggregateStatistic.RANGE and self.value_range is None:
            raise ValueError("range statistic needs range.min and range.max")
        if self.query_type == AggregateQueryType.GENE_PRESENCE_COUNT and not self.target_genes:
            raise ValueError("gene_presence_count needs targetGenes")
        if self.query_type == AggregateQueryType.POPULATION_FREQUENCY and not self.target_variant:
            raise ValueError("population_frequency needs targetVariant")
        return self


ProofClaim = Annotated[
    Union[GenePresenceClaim, GeneAbsenceClaim, GeneVariantClaim, AggregateClaim],
    Field(discriminator="kind"),
]

_CLAIM_ADAPTER: TypeAdapter = TypeAdapter(ProofClaim)


def _errors(exc: ValidationError) -> List[str]:
    return [f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()]


def parse_claim(data: Union[ClaimModel, Mapping[str, Any]]) -> ClaimModel:
    """Parse any claim from a mapping carrying a ``kind`` tag."""
    if isinstance(data, ClaimModel):
        return data
    if not isinstance(data, Mapping):
        raise InvalidDataError(f"Claim must be a keyed record, got {type(data).__name__}")
    try:
        return _CLAIM_ADAPTER.validate_python(dict(data))
    except ValidationError as exc:
        raise InvalidDataError("Invalid claim", {"errors": _errors(exc)}) from exc


def coerce_claim(model: type, data: Any) -> ClaimModel:
    """Parse ``data`` as a claim of exactly ``model``'s kind."""
    if isinstance(data, model):
        return data
    if isinstance(data, ClaimModel):
        raise InvalidDataError(
            f"Expected a {model.__name__}, got {type(data).__name__}"
        )
    if not isinstance(data, Mapping):
        raise InvalidDataError(f"Claim must be a keyed record, got {type(data).__name__}")
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        raise InvalidDataError("Invalid claim", {"errors": _errors(exc)}) from exc
