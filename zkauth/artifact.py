"""
Proof Artifact Records
======================

Fixed-field records for the proof artifact wire format:

    {
        "public_inputs": <opaque>,
        "auxiliary_inputs": {
            "masked_content": [int, ...],          # max_content_len bytes
            "jwt_sha2_hash": ["hi", "lo"],         # decimal strings
            "payload_start_index": int,
            "payload_len": int,
            "eph_public_key": ["hi", "lo"],
            "max_epoch": int,
            "num_sha2_blocks": int,
            "subject_commitment": "decimal"
        }
    }

[SECURITY] Parsing only checks shapes. Nothing in auxiliary_inputs is
trusted until verify_openid_proof() has run every verifier gate.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union

from .claims import RevealedClaim, extract_claims
from .config import CircuitParams
from .errors import MalformedInput
from .verifier import MaskedContentVerifier, VerifiedContent

logger = logging.getLogger(__name__)


def _to_int(value: Any, name: str) -> int:
    # bool is an int subclass, but never a valid scalar here
    if isinstance(value, bool):
        raise MalformedInput(f"{name} must be an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 10)
        except ValueError:
            pass
    raise MalformedInput(f"{name} must be an integer, got {value!r}")


def _to_pair(value: Any, name: str) -> Tuple[int, int]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise MalformedInput(f"{name} must be a pair, got {value!r}")
    return _to_int(value[0], f"{name}[0]"), _to_int(value[1], f"{name}[1]")


@dataclass
class AuxiliaryInputs:
    """Public values that accompany the proof."""

    masked_content: List[int]
    jwt_sha2_hash: Tuple[int, int]
    payload_start_index: int
    payload_len: int
    eph_public_key: Tuple[int, int]
    max_epoch: int
    num_sha2_blocks: int
    subject_commitment: int

    def to_dict(self) -> Dict[str, Any]:
        """Serialize; big integers become decimal strings."""
        return {
            "masked_content": list(self.masked_content),
            "jwt_sha2_hash": [str(x) for x in self.jwt_sha2_hash],
            "payload_start_index": self.payload_start_index,
            "payload_len": self.payload_len,
            "eph_public_key": [str(x) for x in self.eph_public_key],
            "max_epoch": self.max_epoch,
            "num_sha2_blocks": self.num_sha2_blocks,
            "subject_commitment": str(self.subject_commitment),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuxiliaryInputs":
        """
        Deserialize.

        Accepts the legacy key `sub_id_com` for subject_commitment.

        Raises:
            MalformedInput: missing key or wrongly typed value
        """
        if not isinstance(data, dict):
            raise MalformedInput("auxiliary_inputs must be an object")

        data = dict(data)
        if "subject_commitment" not in data and "sub_id_com" in data:
            data["subject_commitment"] = data["sub_id_com"]

        required = (
            "masked_content", "jwt_sha2_hash", "payload_start_index", "payload_len",
            "eph_public_key", "max_epoch", "num_sha2_blocks", "subject_commitment",
        )
        missing = [k for k in required if k not in data]
        if missing:
            raise MalformedInput(f"auxiliary_inputs missing: {', '.join(missing)}")

        masked = data["masked_content"]
        if not isinstance(masked, (list, tuple)):
            raise MalformedInput("masked_content must be an array")

        return cls(
            masked_content=[_to_int(b, "masked_content") for b in masked],
            jwt_sha2_hash=_to_pair(data["jwt_sha2_hash"], "jwt_sha2_hash"),
            payload_start_index=_to_int(data["payload_start_index"], "payload_start_index"),
            payload_len=_to_int(data["payload_len"], "payload_len"),
            eph_public_key=_to_pair(data["eph_public_key"], "eph_public_key"),
            max_epoch=_to_int(data["max_epoch"], "max_epoch"),
            num_sha2_blocks=_to_int(data["num_sha2_blocks"], "num_sha2_blocks"),
            subject_commitment=_to_int(data["subject_commitment"], "subject_commitment"),
        )


@dataclass
class ProofArtifact:
    """Proof output as received from the prover."""

    auxiliary_inputs: AuxiliaryInputs
    public_inputs: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "public_inputs": self.public_inputs,
            "auxiliary_inputs": self.auxiliary_inputs.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProofArtifact":
        if not isinstance(data, dict) or "auxiliary_inputs" not in data:
            raise MalformedInput("Proof artifact must contain auxiliary_inputs")
        return cls(
            auxiliary_inputs=AuxiliaryInputs.from_dict(data["auxiliary_inputs"]),
            public_inputs=data.get("public_inputs"),
        )


@dataclass(frozen=True)
class VerificationResult:
    """Verified content plus the claims it reveals, in payload order."""

    content: VerifiedContent
    claims: List[RevealedClaim] = field(default_factory=list)

    def revealed(self) -> Dict[str, Any]:
        """All revealed claims merged into one dict."""
        merged: Dict[str, Any] = {}
        for claim in self.claims:
            merged.update(claim.as_dict())
        return merged


def verify_openid_proof(
    artifact: Union[ProofArtifact, Dict[str, Any]],
    params: CircuitParams,
) -> VerificationResult:
    """
    Check the masked content of a proof artifact and recover its claims.

    Only the masked-content side is checked here; the proof itself and the
    token signature belong to external verifiers.

    Raises:
        VerificationError: a structural gate failed
        DecodeError: a revealed run is not valid text
        MalformedInput: artifact shape is wrong
    """
    if isinstance(artifact, dict):
        artifact = ProofArtifact.from_dict(artifact)
    aux = artifact.auxiliary_inputs

    content = MaskedContentVerifier(params).verify(
        aux.masked_content,
        aux.num_sha2_blocks,
        aux.payload_start_index,
        aux.payload_len,
    )
    claims = extract_claims(content.masked_payload, params.mask_value)

    logger.info(f"[VERIFY] Masked content accepted, {len(claims)} revealed runs")
    return VerificationResult(content=content, claims=claims)
