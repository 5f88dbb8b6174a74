"""
zkauth Error Hierarchy
======================

[SECURITY] Все ошибки - жёсткая остановка. Никаких retry, никаких
частичных результатов, никаких значений по умолчанию.

ZkAuthError
├── MalformedInput          - нарушено предусловие вызывающего кода
├── CapacityExceeded        - сообщение не помещается в схему
├── PaddingError            - нарушен инвариант SHA-2 padding
├── ClaimNotFound           - запрошенный claim отсутствует в payload
├── DecodeError             - раскрытый фрагмент не декодируется в текст
└── VerificationError       - proof artifact не прошёл проверку
    ├── InvalidLength
    ├── InvalidBlockCount
    ├── InvalidExtraPadding
    ├── InvalidHeaderLength
    ├── InvalidBitLength
    ├── InvalidPayloadLength
    └── InvalidPadding
"""

from typing import Optional


class ZkAuthError(Exception):
    """Base class for all masked-content protocol errors."""
    pass


class MalformedInput(ZkAuthError):
    """Caller violated a precondition (e.g. non byte-aligned bits)."""
    pass


class CapacityExceeded(ZkAuthError):
    """Input needs more room than the circuit supports. Never truncated."""
    pass


class PaddingError(ZkAuthError):
    """Padded message length is not a multiple of 512 bits."""
    pass


class ClaimNotFound(ZkAuthError):
    """Requested claim is not a top-level member of the payload."""

    def __init__(self, claim: str, message: str = ""):
        super().__init__(message or f"Claim {claim!r} not found in payload")
        self.claim = claim


class DecodeError(ZkAuthError):
    """A revealed run failed to decode to valid text."""

    def __init__(self, message: str, offset: int = -1):
        super().__init__(message)
        self.offset = offset


class VerificationError(ZkAuthError):
    """
    Masked content is inconsistent with a legitimately masked token.

    [SECURITY] The proof artifact must be rejected outright. ``gate``
    names the failed stage, ``offset`` is the byte offset inside the
    masked content where the violation was found (-1 if not applicable).
    """

    gate = "verify"

    def __init__(self, message: str, offset: Optional[int] = None):
        self.offset = -1 if offset is None else offset
        if offset is not None:
            message = f"{message} (gate={self.gate}, offset={offset})"
        else:
            message = f"{message} (gate={self.gate})"
        super().__init__(message)


class InvalidLength(VerificationError):
    gate = "length"


class InvalidBlockCount(VerificationError):
    gate = "block_count"


class InvalidExtraPadding(VerificationError):
    gate = "extra_padding"


class InvalidHeaderLength(VerificationError):
    gate = "header"


class InvalidBitLength(VerificationError):
    gate = "bit_length"


class InvalidPayloadLength(VerificationError):
    gate = "payload_length"


class InvalidPadding(VerificationError):
    gate = "sha2_padding"
