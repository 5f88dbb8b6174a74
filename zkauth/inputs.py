"""
Circuit Input Generation
========================

[PROVER] Builds the full input set for one proof-generation session and
the matching auxiliary (public) inputs.

Pipeline:
    token -> SHA-256 padding -> content chunks
          -> reveal mask -> masked content -> masked_content_hash
    eph key + max_epoch + randomness -> nonce
    key claim + pin -> subject_commitment
    all of the above -> all_inputs_hash

[EXTERNAL] The commitment hash (Poseidon over BN254) is injected as a plain
callable. Input ordering must match the circuit exactly; see
ALL_INPUTS_SCHEMA.
"""

import hashlib
import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from nacl.signing import VerifyKey
from nacl.exceptions import CryptoError

from .artifact import AuxiliaryInputs
from .bits import bits_to_int, pack, split_128
from .config import SHA2_BLOCK_BITS, P, CircuitParams
from .errors import CapacityExceeded, MalformedInput
from .mask import apply_mask, build_mask, extend_mask
from .sha2 import chunk_to_blocks
from .token import Token, locate_claim

logger = logging.getLogger(__name__)

CommitmentHash = Callable[[Sequence[int]], int]

# [WIRE] Order of the public-input commitment. Never reorder.
ALL_INPUTS_SCHEMA: Tuple[str, ...] = (
    "sha2_hash_hi",
    "sha2_hash_lo",
    "masked_content_hash",
    "payload_start_index",
    "payload_len",
    "pubkey_hi",
    "pubkey_lo",
    "max_epoch",
    "nonce",
    "num_sha2_blocks",
    "subject_commitment",
)

EphemeralKey = Union[VerifyKey, bytes, int]


@dataclass
class ZKInputs:
    """Private and public circuit inputs."""

    content: List[int]
    num_sha2_blocks: int
    payload_start_index: int
    payload_len: int
    mask: List[int]

    # Key claim check
    extended_key_claim: List[int]
    claim_length_ascii: int
    claim_index_b64: int
    claim_length_b64: int
    subject_pin: int
    key_claim_name_length: int

    # Nonce
    eph_public_key: Tuple[int, int]
    max_epoch: int
    jwt_randomness: int

    all_inputs_hash: int

    def to_dict(self) -> Dict[str, Any]:
        """Circuit input JSON: every scalar as a decimal string."""
        def conv(v: Any) -> Any:
            if isinstance(v, (list, tuple)):
                return [conv(x) for x in v]
            return str(v)
        return {k: conv(v) for k, v in asdict(self).items()}


def commit(hash_fn: CommitmentHash, values: Sequence[int]) -> int:
    """
    Call the commitment hash after checking every input is a field element.

    Raises:
        MalformedInput: value outside [0, P) or hash result outside [0, P)
    """
    for i, v in enumerate(values):
        if not isinstance(v, int) or v < 0 or v >= P:
            raise MalformedInput(f"Commitment input #{i} is not a field element: {v!r}")
    result = hash_fn(list(values))
    if not isinstance(result, int) or result < 0 or result >= P:
        raise MalformedInput(f"Commitment hash returned a non field element: {result!r}")
    return result


def ephemeral_key_halves(key: EphemeralKey) -> Tuple[int, int]:
    """
    Split a 32-byte Ed25519 public key into (hi, lo) 128-bit halves.

    Accepts a nacl VerifyKey, its raw 32 bytes, or the key as an integer.
    """
    if isinstance(key, int):
        return split_128(key)
    if isinstance(key, (bytes, bytearray)):
        try:
            key = VerifyKey(bytes(key))
        except (CryptoError, TypeError, ValueError) as e:
            raise MalformedInput(f"Invalid ephemeral public key: {e}")
    if not isinstance(key, VerifyKey):
        raise MalformedInput(f"Unsupported ephemeral key type {type(key).__name__}")
    return split_128(int.from_bytes(key.encode(), "big"))


def sha256_halves(data: bytes) -> Tuple[int, int]:
    return split_128(int.from_bytes(hashlib.sha256(data).digest(), "big"))


def compute_nonce(
    eph_public_key: Tuple[int, int],
    max_epoch: int,
    jwt_randomness: int,
    hash_fn: CommitmentHash,
) -> int:
    return commit(hash_fn, [eph_public_key[0], eph_public_key[1], max_epoch, jwt_randomness])


def commit_subject(
    extended_claim: str,
    pin: int,
    params: CircuitParams,
    hash_fn: CommitmentHash,
) -> int:
    """
    Commitment to the key claim: H(pack(claim without terminator), pin).

    The claim bytes are zero-padded to max_extended_key_claim_len before
    packing, so the commitment has a fixed arity.
    """
    raw = list(extended_claim[:-1].encode("utf-8"))
    raw += [0] * (params.max_extended_key_claim_len - len(raw))
    return commit(hash_fn, pack(raw, 8, params.pack_width) + [pin])


def all_inputs_hash(values: Dict[str, int], hash_fn: CommitmentHash) -> int:
    """Hash `values` in ALL_INPUTS_SCHEMA order."""
    missing = [k for k in ALL_INPUTS_SCHEMA if k not in values]
    if missing:
        raise MalformedInput(f"Missing public inputs: {', '.join(missing)}")
    return commit(hash_fn, [values[k] for k in ALL_INPUTS_SCHEMA])


def _key_claim_inputs(
    token: Token,
    key_claim_name: str,
    params: CircuitParams,
) -> Tuple[Dict[str, Any], str]:
    if len(key_claim_name) > params.max_key_claim_name_len:
        raise CapacityExceeded(
            f"Key claim name {key_claim_name!r} exceeds {params.max_key_claim_name_len} chars"
        )

    span = locate_claim(token.payload, key_claim_name)
    value = span.value if isinstance(span.value, str) else str(span.value)
    if len(value) > params.max_key_claim_value_len:
        raise CapacityExceeded(
            f"Key claim value exceeds {params.max_key_claim_value_len} chars"
        )

    extended = list(span.extended_claim.encode("utf-8"))
    if len(extended) > params.max_extended_key_claim_len:
        raise CapacityExceeded(
            f"Extended key claim exceeds {params.max_extended_key_claim_len} bytes"
        )

    inputs = {
        "extended_key_claim": extended + [0] * (params.max_extended_key_claim_len - len(extended)),
        "claim_length_ascii": len(extended),
        "claim_index_b64": span.index_b64 + token.payload_start_index,
        "claim_length_b64": span.length_b64,
        "key_claim_name_length": len(key_claim_name),
    }
    return inputs, span.extended_claim


def generate_inputs(
    token: Union[Token, str],
    params: CircuitParams,
    hash_fn: CommitmentHash,
    eph_public_key: EphemeralKey,
    max_epoch: int,
    jwt_randomness: int,
    subject_pin: int,
    key_claim_name: str = "sub",
    reveal_fields: Optional[Sequence[str]] = None,
) -> Tuple[ZKInputs, AuxiliaryInputs]:
    """
    Build circuit inputs and auxiliary inputs for one token.

    Args:
        token: Signed or unsigned JWT; the signature is ignored
        params: Circuit constants
        hash_fn: Commitment hash (Poseidon in production)
        eph_public_key: Ephemeral Ed25519 public key
        max_epoch: Last epoch the ephemeral key is valid for
        jwt_randomness: Randomness folded into the nonce
        subject_pin: User pin folded into the subject commitment
        key_claim_name: Claim identifying the user
        reveal_fields: Claims to disclose, params.claims_to_reveal if None

    Raises:
        CapacityExceeded: token or key claim does not fit the circuit
        ClaimNotFound: a reveal field or the key claim is absent
    """
    if isinstance(token, str):
        token = Token.parse(token)
    if params.in_width != 8:
        raise MalformedInput("Masking works on bytes; in_width must be 8")
    if reveal_fields is None:
        reveal_fields = params.claims_to_reveal

    unsigned = token.unsigned.encode("ascii")
    max_len = params.max_padded_unsigned_jwt_len

    # SHA-256 content
    chunks, num_sha2_blocks = chunk_to_blocks(
        unsigned, max_len * 8 // SHA2_BLOCK_BITS, params.in_width
    )
    content = [bits_to_int(c) for c in chunks]

    # Mask
    mask = extend_mask(build_mask(token, reveal_fields), max_len)
    masked_content = apply_mask(content, mask, params.mask_value)
    masked_content_hash = commit(hash_fn, pack(masked_content, 8, params.pack_width))

    # Key claim
    kc_inputs, extended_claim = _key_claim_inputs(token, key_claim_name, params)
    subject_commitment = commit_subject(extended_claim, subject_pin, params, hash_fn)

    # Nonce
    eph = ephemeral_key_halves(eph_public_key)
    nonce = compute_nonce(eph, max_epoch, jwt_randomness, hash_fn)

    sha2_hi, sha2_lo = sha256_halves(unsigned)
    payload_start_index = token.payload_start_index
    payload_len = len(token.payload)

    public = {
        "sha2_hash_hi": sha2_hi,
        "sha2_hash_lo": sha2_lo,
        "masked_content_hash": masked_content_hash,
        "payload_start_index": payload_start_index,
        "payload_len": payload_len,
        "pubkey_hi": eph[0],
        "pubkey_lo": eph[1],
        "max_epoch": max_epoch,
        "nonce": nonce,
        "num_sha2_blocks": num_sha2_blocks,
        "subject_commitment": subject_commitment,
    }

    inputs = ZKInputs(
        content=content,
        num_sha2_blocks=num_sha2_blocks,
        payload_start_index=payload_start_index,
        payload_len=payload_len,
        mask=mask,
        subject_pin=subject_pin,
        eph_public_key=eph,
        max_epoch=max_epoch,
        jwt_randomness=jwt_randomness,
        all_inputs_hash=all_inputs_hash(public, hash_fn),
        **kc_inputs,
    )

    aux = AuxiliaryInputs(
        masked_content=masked_content,
        jwt_sha2_hash=(sha2_hi, sha2_lo),
        payload_start_index=payload_start_index,
        payload_len=payload_len,
        eph_public_key=eph,
        max_epoch=max_epoch,
        num_sha2_blocks=num_sha2_blocks,
        subject_commitment=subject_commitment,
    )

    logger.info(
        f"[INPUTS] Generated inputs: {num_sha2_blocks} blocks, "
        f"revealed {', '.join(reveal_fields) or 'nothing'}"
    )
    return inputs, aux
