"""
Runtime configuration for the genochain core.

Settings are read from the environment (prefix ``GENOCHAIN_``) or a ``.env``
file. Structured options for the encryption manager and the proof subsystem
live in plain pydantic models so they can be built per call in tests and
per environment profile in deployments.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings

from genochain.core.errors import InvalidParameterError

logger = logging.getLogger(__name__)


SUPPORTED_ALGORITHMS: Dict[str, int] = {
    "aes-128-gcm": 16,
    "aes-192-gcm": 24,
    "aes-256-gcm": 32,
}

PRODUCTION_MIN_ITERATIONS: int = 10_000


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class AccessLevelConfig(BaseModel):
    """Key size and AEAD variant used for one access tier."""
    key_size: int
    algorithm: str

    @model_validator(mode="after")
    def _key_matches_algorithm(self) -> "AccessLevelConfig":
        expected = SUPPORTED_ALGORITHMS.get(self.algorithm)
        if expected is None:
            raise ValueError(f"unsupported algorithm {self.algorithm!r}")
        if expected != self.key_size:
            raise ValueError(
                f"{self.algorithm} needs a {expected}-byte key, got {self.key_size}"
            )
        return self


def _default_access_levels() -> Dict[int, AccessLevelConfig]:
    return {
        1: AccessLevelConfig(key_size=16, algorithm="aes-128-gcm"),
        2: AccessLevelConfig(key_size=24, algorithm="aes-192-gcm"),
        3: AccessLevelConfig(key_size=32, algorithm="aes-256-gcm"),
    }


class PasswordPolicy(BaseModel):
    min_length: int = 12
    require_uppercase: bool = True
    require_lowercase: bool = True
    require_numbers: bool = True
    require_special_chars: bool = True
    forbidden_patterns: List[str] = Field(
        default_factory=lambda: ["123456", "password", "qwerty"]
    )


class EncryptionConfig(BaseModel):
    """Options consumed by EncryptionManager."""
    algorithm: str = "aes-256-gcm"
    key_derivation_iterations: int = 100_000
    salt_length: int = 32
    iv_length: int = 12
    tag_length: int = 16
    access_levels: Dict[int, AccessLevelConfig] = Field(default_factory=_default_access_levels)
    password_policy: PasswordPolicy = Field(default_factory=PasswordPolicy)
    enforce_password_policy: bool = False

    @field_validator("algorithm")
    @classmethod
    def _known_algorithm(cls, value: str) -> str:
        if value not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"unsupported algorithm {value!r}")
        return value

    @field_validator("key_derivation_iterations", "salt_length")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("iv_length")
    @classmethod
    def _gcm_nonce_range(cls, value: int) -> int:
        if not 8 <= value <= 128:
            raise ValueError("AES-GCM nonce must be between 8 and 128 bytes")
        return value

    @field_validator("tag_length")
    @classmethod
    def _full_tag(cls, value: int) -> int:
        if value != 16:
            raise ValueError("only 16-byte authentication tags are supported")
        return value

    @field_validator("access_levels")
    @classmethod
    def _tiers_in_range(cls, value: Dict[int, AccessLevelConfig]) -> Dict[int, AccessLevelConfig]:
        unknown = sorted(level for level in value if level not in (1, 2, 3))
        if unknown:
            raise ValueError(f"unknown access levels {unknown}")
        return value

    @property
    def master_key_size(self) -> int:
        return SUPPORTED_ALGORITHMS[self.algorithm]

    def level(self, access_level: int) -> AccessLevelConfig:
        try:
            return self.access_levels[access_level]
        except KeyError:
            raise InvalidParameterError(
                f"No key configuration for access level {access_level}"
            ) from None

    @classmethod
    def from_options(cls, options: Optional[Dict[str, object]] = None) -> "EncryptionConfig":
        """Validate a plain options mapping, reporting problems as InvalidParameterError."""
        try:
            return cls(**(options or {}))
        except ValidationError as exc:
            raise InvalidParameterError(
                "Invalid encryption configuration",
                {"errors": [error["msg"] for error in exc.errors()]},
            ) from exc

    @classmethod
    def for_environment(cls, environment: Union[Environment, str], **overrides) -> "EncryptionConfig":
        """Build the profile for an environment, then apply explicit overrides."""
        try:
            env = Environment(environment)
        except ValueError:
            raise InvalidParameterError(f"Unknown environment {environment!r}") from None
        values: Dict[str, object] = {}
        if env in (Environment.DEVELOPMENT, Environment.TESTING):
            values["password_policy"] = PasswordPolicy(min_length=8)
        if env == Environment.TESTING:
            values["key_derivation_iterations"] = 1_000
        if env == Environment.PRODUCTION:
            values["enforce_password_policy"] = True
        values.update(overrides)
        return cls.from_options(values)


class ProofConfig(BaseModel):
    """Options consumed by proof generators and the verifier."""
    version: str = "1.0.0"
    max_proof_age_seconds: int = 3600
    # 32 random-looking bytes top out at 5 bits/byte.
    min_hash_entropy: float = 4.0
    batch_size: int = 10
    privacy_level: str = "high"
    variant_confidence_threshold: float = 0.8
    aggregate_confidence_level: float = 0.95
    aggregate_precision: str = "standard"

    @field_validator("max_proof_age_seconds", "batch_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value


class Settings(BaseSettings):
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    LOG_LEVEL: Optional[str] = None

    # Encryption
    KEY_DERIVATION_ITERATIONS: Optional[int] = None
    ENFORCE_PASSWORD_POLICY: Optional[bool] = None

    # Proofs
    PROOF_MAX_AGE_SECONDS: int = 3600
    PROOF_MIN_HASH_ENTROPY: float = 4.0
    PROOF_BATCH_SIZE: int = 10

    class Config:
        case_sensitive = True
        env_prefix = "GENOCHAIN_"
        env_file = ".env"

    def encryption_config(self) -> EncryptionConfig:
        overrides: Dict[str, object] = {}
        if self.KEY_DERIVATION_ITERATIONS is not None:
            overrides["key_derivation_iterations"] = self.KEY_DERIVATION_ITERATIONS
        if self.ENFORCE_PASSWORD_POLICY is not None:
            overrides["enforce_password_policy"] = self.ENFORCE_PASSWORD_POLICY
        return EncryptionConfig.for_environment(self.ENVIRONMENT, **overrides)

    def proof_config(self) -> ProofConfig:
        return ProofConfig(
            max_proof_age_seconds=self.PROOF_MAX_AGE_SECONDS,
            min_hash_entropy=self.PROOF_MIN_HASH_ENTROPY,
            batch_size=self.PROOF_BATCH_SIZE,
        )

    def config_warnings(self) -> List[str]:
        """Weak settings worth surfacing at startup. Empty list means clean."""
        warnings: List[str] = []
        encryption = self.encryption_config()
        if self.ENVIRONMENT == Environment.PRODUCTION:
            if encryption.key_derivation_iterations < PRODUCTION_MIN_ITERATIONS:
                warnings.append(
                    f"Key derivation iterations ({encryption.key_derivation_iterations}) "
                    f"below production minimum {PRODUCTION_MIN_ITERATIONS}"
                )
            if not encryption.enforce_password_policy:
                warnings.append("Password policy is not enforced in production")
        for warning in warnings:
            logger.warning(f"[CONFIG] {warning}")
        return warnings


_DEFAULT_LOG_LEVELS: Dict[Environment, int] = {
    Environment.DEVELOPMENT: logging.DEBUG,
    Environment.TESTING: logging.WARNING,
    Environment.STAGING: logging.INFO,
    Environment.PRODUCTION: logging.INFO,
}


def configure_logging(level: Optional[str] = None) -> None:
    resolved = level or settings.LOG_LEVEL
    if resolved:
        numeric = logging.getLevelName(resolved.upper())
        if not isinstance(numeric, int):
            raise InvalidParameterError(f"Unknown log level {resolved!r}")
    else:
        numeric = _DEFAULT_LOG_LEVELS[settings.ENVIRONMENT]
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


settings = Settings()
