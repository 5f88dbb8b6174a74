"""
Masked Content Verifier
=======================

[SECURITY] Граница доверия. masked_content и публичные скаляры приходят
из недоверенного proof artifact; каждый скаляр перепроверяется по байтам.

Layout of masked_content (fixed length, max_content_len bytes):
================================================================

| Region          | Size                    | Content                          |
|-----------------|-------------------------|----------------------------------|
| Header          | payload_start_index - 1 | base64url, always revealed       |
| Separator       | 1                       | '.'                              |
| Payload         | payload_len             | base64url or '=' where hidden    |
| SHA-2 pad start | 1                       | 0x80                             |
| SHA-2 zeros     | K, 0 <= K < 64          | 0x00                             |
| Length field    | 8                       | big-endian bit length            |
| Capacity        | rest                    | 0x00                             |

Header + separator + payload + padding occupy num_sha2_blocks * 64 bytes.

Gates (strict order, fail-fast, none skipped):
1. Length          -> InvalidLength
2. Capacity        -> InvalidBlockCount / InvalidExtraPadding
3. Header boundary -> InvalidHeaderLength
4. Length field    -> InvalidBitLength / InvalidPayloadLength
5. Padding body    -> InvalidPadding

Every gate fixes an offset the next gate reads from, so reordering them
would let a later check be satisfied by bytes an earlier one rejects.
"""

import logging
from dataclasses import dataclass
from typing import Any, Sequence, Union

from .config import SHA2_BLOCK_BYTES, CircuitParams
from .errors import (
    InvalidBitLength,
    InvalidBlockCount,
    InvalidExtraPadding,
    InvalidHeaderLength,
    InvalidLength,
    InvalidPadding,
    InvalidPayloadLength,
    MalformedInput,
    VerificationError,
)
from .token import load_json_segment

logger = logging.getLogger(__name__)

LENGTH_FIELD_SIZE = 8           # 64-bit big-endian bit length
PAD_START_BYTE = 0x80           # single '1' bit followed by zeros
SEPARATOR = ord(".")


@dataclass(frozen=True)
class VerifiedContent:
    """
    Output of a fully passed verification.

    [SECURITY] Only this object may be handed to claim extraction.
    """

    header: str
    masked_payload: str
    payload_start_index: int
    payload_len: int
    num_sha2_blocks: int

    def header_json(self) -> Any:
        """
        Decode the header loosely. Its JSON well-formedness is checked by
        the signature verifier, not here.
        """
        return load_json_segment(self.header, "header")


def _coerce(masked_content: Union[bytes, bytearray, Sequence[int]]) -> bytes:
    try:
        return bytes(masked_content)
    except (TypeError, ValueError) as e:
        raise MalformedInput(f"masked_content is not a byte array: {e}")


def _is_int(value: Any) -> bool:
    # bool is an int subclass, but never a valid scalar here
    return isinstance(value, int) and not isinstance(value, bool)


def _first_nonzero(data: bytes) -> int:
    for i, b in enumerate(data):
        if b != 0:
            return i
    return -1


class MaskedContentVerifier:
    """
    Structural verifier for the circuit's masked output.

    [USAGE]
        verifier = MaskedContentVerifier(circuit_params)
        content = verifier.verify(masked, num_sha2_blocks, start, payload_len)
        claims = extract_claims(content.masked_payload)
    """

    def __init__(self, params: CircuitParams):
        self.max_content_len = params.max_padded_unsigned_jwt_len

    def verify(
        self,
        masked_content: Union[bytes, bytearray, Sequence[int]],
        num_sha2_blocks: int,
        payload_start_index: int,
        payload_len: int,
    ) -> VerifiedContent:
        """
        Run all gates.

        Raises:
            VerificationError: subclass naming the failed gate
            MalformedInput: masked_content is not a byte array
        """
        try:
            return self._verify(
                _coerce(masked_content), num_sha2_blocks, payload_start_index, payload_len
            )
        except VerificationError as e:
            logger.warning(f"[VERIFY] Rejected masked content: {e}")
            raise

    def _verify(
        self,
        content: bytes,
        num_sha2_blocks: int,
        payload_start_index: int,
        payload_len: int,
    ) -> VerifiedContent:
        # 1. Fixed-size public input
        if len(content) != self.max_content_len:
            raise InvalidLength(
                f"Masked content has {len(content)} bytes, expected {self.max_content_len}"
            )

        # 2. Unused capacity beyond the padded message
        content = self._strip_capacity(content, num_sha2_blocks)

        # Declared scalars must be plain ints before any offset math
        if not _is_int(payload_start_index) or payload_start_index < 1:
            raise InvalidHeaderLength(
                f"payload_start_index {payload_start_index!r} is not a positive integer"
            )
        if not _is_int(payload_len) or payload_len < 0:
            raise InvalidPayloadLength(
                f"payload_len {payload_len!r} is not a non-negative integer"
            )

        # 3. Header boundary
        header_len = content.find(SEPARATOR)
        if header_len == -1:
            raise InvalidHeaderLength("No '.' separator in masked content")
        if header_len != payload_start_index - 1:
            raise InvalidHeaderLength(
                f"Separator at {header_len}, declared payload_start_index "
                f"{payload_start_index}",
                offset=header_len,
            )

        # 4. SHA-2 length field
        length_offset = len(content) - LENGTH_FIELD_SIZE
        bit_length = int.from_bytes(content[length_offset:], "big")
        if bit_length % 8 != 0:
            raise InvalidBitLength(
                f"Length field {bit_length} is not a whole number of bytes",
                offset=length_offset,
            )
        header_and_payload_len = bit_length // 8
        actual_payload_len = header_and_payload_len - payload_start_index
        if actual_payload_len < 0 or actual_payload_len != payload_len:
            raise InvalidPayloadLength(
                f"Length field implies payload_len {actual_payload_len}, "
                f"declared {payload_len}",
                offset=length_offset,
            )

        # 5. SHA-2 padding body
        self._check_padding(content, header_and_payload_len, length_offset)

        header = content[:header_len]
        payload = content[payload_start_index:header_and_payload_len]
        logger.debug(
            f"[VERIFY] Accepted: header {header_len} bytes, payload {payload_len} bytes, "
            f"{num_sha2_blocks} blocks"
        )
        return VerifiedContent(
            header=header.decode("latin-1"),
            masked_payload=payload.decode("latin-1"),
            payload_start_index=payload_start_index,
            payload_len=payload_len,
            num_sha2_blocks=num_sha2_blocks,
        )

    def _strip_capacity(self, content: bytes, num_sha2_blocks: int) -> bytes:
        """
        Gate 2: bytes from num_sha2_blocks * 64 on must all be zero.

        An empty suffix (message fills the whole capacity) is trivially valid.
        """
        if (
            not _is_int(num_sha2_blocks)
            or num_sha2_blocks < 1
            or num_sha2_blocks * SHA2_BLOCK_BYTES > len(content)
        ):
            raise InvalidBlockCount(
                f"num_sha2_blocks {num_sha2_blocks!r} does not fit "
                f"{len(content)} bytes of content"
            )

        used = num_sha2_blocks * SHA2_BLOCK_BYTES
        extra = content[used:]
        if extra:
            bad = _first_nonzero(extra)
            if bad != -1:
                raise InvalidExtraPadding(
                    "Non-zero byte in unused capacity", offset=used + bad
                )
        return content[:used]

    @staticmethod
    def _check_padding(content: bytes, payload_end: int, length_offset: int) -> None:
        """
        Gate 5: 0x80, then zeros up to the length field.

        [RFC 4634 4.1(b)] Fewer than 64 zero bytes, otherwise a whole block
        of padding was smuggled in and num_sha2_blocks is not minimal.
        """
        if payload_end >= length_offset:
            raise InvalidPadding(
                "No room for SHA-2 padding before the length field", offset=payload_end
            )
        if content[payload_end] != PAD_START_BYTE:
            raise InvalidPadding(
                f"SHA-2 padding starts with 0x{content[payload_end]:02x}, expected 0x80",
                offset=payload_end,
            )
        zeros = content[payload_end + 1:length_offset]
        bad = _first_nonzero(zeros)
        if bad != -1:
            raise InvalidPadding(
                "Non-zero byte in SHA-2 padding", offset=payload_end + 1 + bad
            )
        if len(zeros) >= SHA2_BLOCK_BYTES:
            raise InvalidPadding(
                f"SHA-2 padding has {len(zeros)} zero bytes, not minimal",
                offset=payload_end,
            )


def verify_masked_content(
    masked_content: Union[bytes, bytearray, Sequence[int]],
    num_sha2_blocks: int,
    payload_start_index: int,
    payload_len: int,
    params: CircuitParams,
) -> VerifiedContent:
    """Functional shortcut for MaskedContentVerifier(params).verify(...)."""
    return MaskedContentVerifier(params).verify(
        masked_content, num_sha2_blocks, payload_start_index, payload_len
    )
