"""
zkauth - Masked-Content Protocol Layer
======================================
Подготовка входов и проверка выхода схемы zero-knowledge OpenID
аутентификации:
- BitPacking: байты <-> биты, chunking, packing в элементы поля
- Sha2Padder: SHA-256 padding и разбиение на блоки
- MaskBuilder: маска раскрытия claims
- MaskedContentVerifier: проверка masked content из proof artifact
- ClaimExtractor: декодирование раскрытых claims
- Inputs: полный набор входов схемы для одной сессии
"""

from .config import CircuitParams, DevConstants, P, circuit_params, dev_constants
from .errors import (
    ZkAuthError,
    MalformedInput,
    CapacityExceeded,
    PaddingError,
    ClaimNotFound,
    DecodeError,
    VerificationError,
    InvalidLength,
    InvalidBlockCount,
    InvalidExtraPadding,
    InvalidHeaderLength,
    InvalidBitLength,
    InvalidPayloadLength,
    InvalidPadding,
)
from .bits import to_bits, from_bits, chunk, pack, bits_to_int, split_128
from .sha2 import pad_message, block_count, chunk_to_blocks, padded_bytes
from .token import Token, ClaimSpan, locate_claim, claim_string, b64url_decode, b64url_encode
from .mask import build_mask, extend_mask, apply_mask
from .verifier import MaskedContentVerifier, VerifiedContent, verify_masked_content
from .claims import RevealedClaim, extract_claims, decode_masked_b64
from .artifact import AuxiliaryInputs, ProofArtifact, VerificationResult, verify_openid_proof
from .inputs import (
    ALL_INPUTS_SCHEMA,
    CommitmentHash,
    ZKInputs,
    all_inputs_hash,
    commit_subject,
    compute_nonce,
    ephemeral_key_halves,
    generate_inputs,
)
from .logger import AuditTrailHandler, attach_audit_trail

__all__ = [
    # Config
    "CircuitParams",
    "DevConstants",
    "P",
    "circuit_params",
    "dev_constants",
    # Errors
    "ZkAuthError",
    "MalformedInput",
    "CapacityExceeded",
    "PaddingError",
    "ClaimNotFound",
    "DecodeError",
    "VerificationError",
    "InvalidLength",
    "InvalidBlockCount",
    "InvalidExtraPadding",
    "InvalidHeaderLength",
    "InvalidBitLength",
    "InvalidPayloadLength",
    "InvalidPadding",
    # BitPacking
    "to_bits",
    "from_bits",
    "chunk",
    "pack",
    "bits_to_int",
    "split_128",
    # Sha2Padder
    "pad_message",
    "block_count",
    "chunk_to_blocks",
    "padded_bytes",
    # Token
    "Token",
    "ClaimSpan",
    "locate_claim",
    "claim_string",
    "b64url_decode",
    "b64url_encode",
    # MaskBuilder
    "build_mask",
    "extend_mask",
    "apply_mask",
    # Verifier
    "MaskedContentVerifier",
    "VerifiedContent",
    "verify_masked_content",
    # ClaimExtractor
    "RevealedClaim",
    "extract_claims",
    "decode_masked_b64",
    # Artifact
    "AuxiliaryInputs",
    "ProofArtifact",
    "VerificationResult",
    "verify_openid_proof",
    # Inputs
    "ALL_INPUTS_SCHEMA",
    "CommitmentHash",
    "ZKInputs",
    "all_inputs_hash",
    "commit_subject",
    "compute_nonce",
    "ephemeral_key_halves",
    "generate_inputs",
    # Logging
    "AuditTrailHandler",
    "attach_audit_trail",
]
