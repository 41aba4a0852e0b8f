"""
Pydantic schemas for genetic datasets.

A dataset is a keyed record. The recognized collections (variants, genes,
sequences, phenotypes, metadata) are validated; any other key is kept as-is
so tier 3 and checksums see exactly what the caller supplied.

Validation rules:
- Variant.type, when present, must be a known variant kind.
- Chromosome labels are strings (integers are accepted and stringified).
- Positions are non-negative integers.
"""

import copy
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from genochain.core.errors import InvalidDataError


class VariantType(str, Enum):
    SNP = "SNP"
    INDEL = "INDEL"
    DELETION = "DELETION"
    INSERTION = "INSERTION"
    CNV = "CNV"
    SV = "SV"
    STR = "STR"
    COMPLEX = "COMPLEX"


class PrivacyLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class GenomicRecord(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def extra(self, key: str) -> Any:
        return (self.model_extra or {}).get(key)


def _stringify(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class Variant(GenomicRecord):
    chromosome: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)
    reference: Optional[str] = None
    alternate: Optional[str] = None
    type: Optional[VariantType] = None
    gene: Optional[str] = None
    quality: Optional[float] = None
    rs_id: Optional[str] = None

    @field_validator("chromosome", mode="before")
    @classmethod
    def _chromosome_label(cls, value: Any) -> Any:
        return _stringify(value)

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    def classified_type(self) -> Optional[VariantType]:
        """Declared type, else classification from reference/alternate lengths."""
        if self.type is not None:
            return self.type
        if not self.reference or not self.alternate:
            return None
        if len(self.reference) == 1 and len(self.alternate) == 1:
            return VariantType.SNP
        if len(self.reference) > len(self.alternate):
            return VariantType.DELETION
        if len(self.alternate) > len(self.reference):
            return VariantType.INSERTION
        return VariantType.COMPLEX


class Gene(GenomicRecord):
    symbol: Optional[str] = None
    name: Optional[str] = None
    chromosome: Optional[str] = None
    start: Optional[int] = None
    end: Optional[int] = None

    @field_validator("chromosome", mode="before")
    @classmethod
    def _chromosome_label(cls, value: Any) -> Any:
        return _stringify(value)


class SequenceAnnotation(GenomicRecord):
    gene: Optional[str] = None
    symbol: Optional[str] = None


class SequenceRecord(GenomicRecord):
    id: Optional[str] = None
    sequence: Optional[str] = None
    annotations: List[SequenceAnnotation] = Field(default_factory=list)
    variants: List[Variant] = Field(default_factory=list)


class Phenotype(GenomicRecord):
    trait: Optional[str] = None
    value: Optional[Any] = None


class GeneticDataset(GenomicRecord):
    """
    Validated view of a caller's dataset.

    ``from_input`` keeps a private deep copy of the original mapping; use
    ``source()`` wherever the exact input is needed (tier 3, checksums,
    filters over arbitrary keys). The caller's object is never mutated.
    """
    variants: List[Variant] = Field(default_factory=list)
    genes: List[Gene] = Field(default_factory=list)
    sequences: List[SequenceRecord] = Field(default_factory=list)
    phenotypes: List[Phenotype] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    _source: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_input(cls, data: Union["GeneticDataset", Mapping[str, Any]]) -> "GeneticDataset":
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise InvalidDataError(
                f"Dataset must be a keyed record, got {type(data).__name__}"
            )
        if not data:
            raise InvalidDataError("Dataset must not be empty")
        try:
            dataset = cls.model_validate(dict(data))
        except ValidationError as exc:
            raise InvalidDataError(
                "Dataset failed validation",
                {"errors": [f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()]},
            ) from exc
        dataset._source = copy.deepcopy(dict(data))
        return dataset

    def source(self) -> Dict[str, Any]:
        """Deep copy of the original mapping (or a dump when built directly)."""
        if self._source:
            return copy.deepcopy(self._source)
        return self.model_dump(mode="json", by_alias=True, exclude_defaults=True)

    def has_any(self, *collections: str) -> bool:
        return any(name in self.model_fields_set for name in collections)

    def all_variants(self) -> List[Variant]:
        """Variants from the top-level list, each sequence record and a ``vcf`` list."""
        found: List[Variant] = list(self.variants)
        for record in self.sequences:
            found.extend(record.variants)
        vcf = self.extra("vcf")
        if isinstance(vcf, list):
            for entry in vcf:
                if isinstance(entry, Mapping):
                    try:
                        found.append(Variant.model_validate(dict(entry)))
                    except ValidationError as exc:
                        raise InvalidDataError("Malformed vcf variant") from exc
        return found
