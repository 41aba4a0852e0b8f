"""
Encrypted package schemas.

Wire format is camelCase JSON with base64 byte fields; Python attributes are
snake_case. EncryptedPackage.to_bytes() is what the storage collaborator
persists and from_bytes() is what it hands back.
"""

from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from genochain.core.errors import InvalidDataError, InvalidParameterError


class AccessTier(IntEnum):
    BASIC = 1
    DETAILED = 2
    FULL = 3


VALID_TIERS = frozenset(int(tier) for tier in AccessTier)


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class EncryptedBlob(WireModel):
    ciphertext: bytes
    iv: bytes
    auth_tag: bytes
    algorithm: str


class WrappedKey(WireModel):
    """Tier key sealed under the master key, stored as iv || tag || ciphertext."""
    encrypted_key: bytes
    salt: bytes


class PackageMetadata(WireModel):
    version: str = "1.0.0"
    timestamp: float
    access_levels: List[int]
    algorithm: str
    tier_algorithms: Dict[int, str]
    key_derivation: str = "pbkdf2-sha512"
    iterations: int


class EncryptedPackage(WireModel):
    master_salt: bytes
    encrypted_tiers: Dict[int, EncryptedBlob]
    access_keys: Dict[int, WrappedKey]
    encrypted_metadata: EncryptedBlob
    checksum: str

    @model_validator(mode="after")
    def _every_tier_has_a_key(self) -> "EncryptedPackage":
        if set(self.encrypted_tiers) != set(self.access_keys):
            raise ValueError("every encrypted tier needs exactly one access key")
        if not self.encrypted_tiers:
            raise ValueError("package holds no tiers")
        return self

    def to_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "EncryptedPackage":
        try:
            return cls.model_validate_json(data)
        except ValidationError as exc:
            raise InvalidDataError("Malformed encrypted package", {"errors": exc.error_count()}) from exc

    @classmethod
    def coerce(cls, package: Union["EncryptedPackage", Mapping[str, Any], bytes]) -> "EncryptedPackage":
        if isinstance(package, cls):
            return package
        if isinstance(package, (bytes, bytearray)):
            return cls.from_bytes(bytes(package))
        if isinstance(package, Mapping):
            try:
                return cls.model_validate(dict(package))
            except ValidationError as exc:
                raise InvalidDataError("Malformed encrypted package", {"errors": exc.error_count()}) from exc
        raise InvalidDataError(f"Expected an encrypted package, got {type(package).__name__}")


class TierConfig(WireModel):
    """Which tiers to build, plus optional wholesale replacements."""
    tiers: List[int] = Field(default_factory=lambda: sorted(VALID_TIERS))
    custom_tiers: Dict[int, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("tiers")
    @classmethod
    def _known_tiers(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("at least one tier is required")
        unknown = [tier for tier in value if tier not in VALID_TIERS]
        if unknown:
            raise ValueError(f"unknown tiers {unknown}")
        return sorted(set(value))

    @field_validator("custom_tiers")
    @classmethod
    def _known_custom_tiers(cls, value: Dict[int, Dict[str, Any]]) -> Dict[int, Dict[str, Any]]:
        unknown = [tier for tier in value if tier not in VALID_TIERS]
        if unknown:
            raise ValueError(f"unknown custom tiers {unknown}")
        return value

    @classmethod
    def coerce(cls, config: Union["TierConfig", Mapping[str, Any], None]) -> "TierConfig":
        if config is None:
            return cls()
        if isinstance(config, cls):
            return config
        try:
            return cls.model_validate(dict(config))
        except ValidationError as exc:
            raise InvalidParameterError(
                "Invalid tier configuration",
                {"errors": [error["msg"] for error in exc.errors()]},
            ) from exc


class DecryptedTier(WireModel):
    data: Dict[str, Any]
    access_level: int
    metadata: Dict[str, Any] = Field(default_factory=dict)
    # Only computed for tier 3, where the whole dataset is available.
    integrity_verified: Optional[bool] = None


class AccessTokenPayload(WireModel):
    access_level: int
    tier_salt: bytes
    algorithm: str
    tier_key: bytes
    valid_until: float
    nonce: bytes


class AccessToken(WireModel):
    access_level: int
    encrypted_token: EncryptedBlob
    valid_until: float
    recipient_fingerprint: Optional[str] = None


class PasswordStrength(WireModel):
    length: int
    has_lowercase: bool
    has_uppercase: bool
    has_numbers: bool
    has_special_chars: bool
    entropy: float
    strength: str
