"""
Fixed-size proof parameter block.

Binary layout (big-endian), zero padded to exactly 256 bytes:

  offset  size  field
  0       1     version
  1       1     proof kind
  2       8     timestamp (f64 seconds)
  10      32    claim hash
  42      16    commitment prefix
  58      1     algorithm tag length N
  59      N     algorithm tag (ASCII)
  59+N    2     extras length M
  61+N    M     extras (compact canonical JSON)

Everything after the extras must be zero. An encoding that does not fit
raises ParameterOverflowError; nothing is ever truncated.
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass, field as dc_field
from typing import Any, Dict

from genochain.core.crypto.commitment import canonical_json
from genochain.core.errors import ParameterOverflowError, ProofStructureError
from genochain.schemas.proof import PARAMETER_BLOCK_BYTES, ProofKind

PARAMETER_VERSION: int = 1
CLAIM_HASH_BYTES: int = 32
COMMITMENT_PREFIX_BYTES: int = 16

_HEADER = struct.Struct(">BBd")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_extras(extras: Any) -> None:
    if not isinstance(extras, dict):
        raise ProofStructureError("Parameter extras must be a JSON object")
    options = extras.get("options", {})
    if not isinstance(options, dict):
        raise ProofStructureError("Parameter options must be a JSON object")
    if "confidenceThreshold" in options and not _is_number(options["confidenceThreshold"]):
        raise ProofStructureError(f"Confidence threshold must be a number, got {options['confidenceThreshold']!r}")
    privacy_level = options.get("privacyLevel")
    if privacy_level is not None and not isinstance(privacy_level, str):
        raise ProofStructureError("Privacy level must be a string")


@dataclass(frozen=True)
class ProofParameters:
    algorithm: str
    proof_kind: ProofKind
    claim_hash: bytes
    commitment_prefix: bytes
    timestamp: float
    extras: Dict[str, Any] = dc_field(default_factory=dict)
    version: int = PARAMETER_VERSION

    def to_bytes(self) -> bytes:
        if len(self.claim_hash) != CLAIM_HASH_BYTES:
            raise ProofStructureError(f"Claim hash must be {CLAIM_HASH_BYTES} bytes")
        if len(self.commitment_prefix) != COMMITMENT_PREFIX_BYTES:
            raise ProofStructureError(f"Commitment prefix must be {COMMITMENT_PREFIX_BYTES} bytes")

        tag = self.algorithm.encode("ascii")
        extras = canonical_json(self.extras).encode("utf-8")
        if len(tag) > 0xFF:
            raise ParameterOverflowError(len(tag), 0xFF)
        if len(extras) > 0xFFFF:
            raise ParameterOverflowError(len(extras), 0xFFFF)

        encoded = b"".join([
            _HEADER.pack(self.version, int(self.proof_kind), self.timestamp),
            self.claim_hash,
            self.commitment_prefix,
            struct.pack(">B", len(tag)),
            tag,
            struct.pack(">H", len(extras)),
            extras,
        ])
        if len(encoded) > PARAMETER_BLOCK_BYTES:
            raise ParameterOverflowError(len(encoded), PARAMETER_BLOCK_BYTES)
        return encoded.ljust(PARAMETER_BLOCK_BYTES, b"\x00")

    @classmethod
    def from_bytes(cls, data: bytes) -> "ProofParameters":
        if len(data) != PARAMETER_BLOCK_BYTES:
            raise ProofStructureError(
                f"Parameter block must be {PARAMETER_BLOCK_BYTES} bytes, got {len(data)}"
            )
        try:
            version, kind, timestamp = _HEADER.unpack_from(data, 0)
            offset = _HEADER.size
            claim_hash = data[offset:offset + CLAIM_HASH_BYTES]
            offset += CLAIM_HASH_BYTES
            prefix = data[offset:offset + COMMITMENT_PREFIX_BYTES]
            offset += COMMITMENT_PREFIX_BYTES

            (tag_len,) = struct.unpack_from(">B", data, offset)
            offset += 1
            algorithm = data[offset:offset + tag_len].decode("ascii")
            offset += tag_len

            (extras_len,) = struct.unpack_from(">H", data, offset)
            offset += 2
            if offset + extras_len > PARAMETER_BLOCK_BYTES:
                raise ProofStructureError("Extras run past the end of the parameter block")
            extras = json.loads(data[offset:offset + extras_len].decode("utf-8"))
            offset += extras_len

            proof_kind = ProofKind(kind)
        except (struct.error, UnicodeDecodeError, ValueError) as exc:
            raise ProofStructureError(f"Malformed parameter block: {exc}") from exc

        _check_extras(extras)
        if any(data[offset:]):
            raise ProofStructureError("Parameter block padding is not zero")

        return cls(
            algorithm=algorithm,
            proof_kind=proof_kind,
            claim_hash=claim_hash,
            commitment_prefix=prefix,
            timestamp=timestamp,
            extras=extras,
            version=version,
        )
