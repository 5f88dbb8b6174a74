"""
SHA-256 Message Padding
=======================

[SECURITY] Canonical padding of `header.payload` before it is fed to the
SHA-256 gadget of the circuit. The verifier relies on the exact same layout,
so both directions share this module.

Algorithm (RFC 4634, section 4.1):
- Append a single '1' bit
- Append K >= 0 '0' bits, K minimal with (L + 1 + K + 64) % 512 == 0
- Append L as a 64-bit big-endian integer

Circuit input:
- Padded message split into `width`-bit chunks
- Right-padded with zero chunks up to the fixed circuit capacity
- [LIMITS] More blocks than the circuit supports -> CapacityExceeded,
  never silent truncation
"""

import logging
from typing import List, Sequence, Tuple

from .bits import chunk, from_bits, to_bits
from .config import SHA2_BLOCK_BITS, SHA2_BLOCK_BYTES, SHA2_LENGTH_FIELD_BITS
from .errors import CapacityExceeded, MalformedInput, PaddingError

logger = logging.getLogger(__name__)


def pad_message(bits: Sequence[int]) -> List[int]:
    """
    Apply SHA-256 padding to a bit sequence.

    Returns:
        New bit list whose length is a multiple of 512 and whose last
        64 bits encode len(bits) big-endian.

    Raises:
        PaddingError: internal invariant violated
    """
    length = len(bits)
    k = (SHA2_BLOCK_BITS + 448 - (length % SHA2_BLOCK_BITS + 1)) % SHA2_BLOCK_BITS

    padded = list(bits)
    padded.append(1)
    padded.extend([0] * k)
    padded.extend(to_bits(length.to_bytes(SHA2_LENGTH_FIELD_BITS // 8, "big")))

    if len(padded) % SHA2_BLOCK_BITS != 0:
        raise PaddingError(
            f"Padded message length {len(padded)} is not a multiple of {SHA2_BLOCK_BITS}"
        )
    return padded


def block_count(padded_bits: Sequence[int]) -> int:
    """Number of 512-bit blocks in an already padded message."""
    if len(padded_bits) % SHA2_BLOCK_BITS != 0:
        raise PaddingError(
            f"Padded message length {len(padded_bits)} is not a multiple of {SHA2_BLOCK_BITS}"
        )
    return len(padded_bits) // SHA2_BLOCK_BITS


def chunk_to_blocks(
    message: bytes,
    max_blocks: int,
    width: int = 8,
) -> Tuple[List[List[int]], int]:
    """
    Pad `message` and split it into circuit input chunks.

    Args:
        message: Raw bytes (`header.payload`)
        max_blocks: Number of SHA-256 blocks the circuit supports
        width: Bits per input wire

    Returns:
        (chunks, num_sha2_blocks): exactly max_blocks * 512 / width chunks
        of `width` bits each, and the number of blocks actually used.

    Raises:
        CapacityExceeded: padded message needs more than max_blocks blocks
        MalformedInput: width does not divide the block size
    """
    if width <= 0 or SHA2_BLOCK_BITS % width != 0:
        raise MalformedInput(f"Chunk width {width} must divide {SHA2_BLOCK_BITS}")

    padded = pad_message(to_bits(message))
    num_sha2_blocks = block_count(padded)

    if num_sha2_blocks > max_blocks:
        raise CapacityExceeded(
            f"Padded message needs {num_sha2_blocks} blocks, circuit supports {max_blocks}"
        )

    segments = chunk(padded, width)
    total = max_blocks * SHA2_BLOCK_BITS // width
    segments.extend([0] * width for _ in range(total - len(segments)))

    logger.debug(
        f"[SHA2] {len(message)} bytes -> {num_sha2_blocks}/{max_blocks} blocks, "
        f"{len(segments)} chunks of {width} bits"
    )
    return segments, num_sha2_blocks


def padded_bytes(message: bytes, max_len: int) -> Tuple[bytes, int]:
    """
    Byte-level view of chunk_to_blocks.

    Returns:
        (content, num_sha2_blocks) where content is exactly max_len bytes:
        message, SHA-256 padding, then zero capacity.
    """
    if max_len % SHA2_BLOCK_BYTES != 0:
        raise MalformedInput(f"Capacity {max_len} is not a multiple of {SHA2_BLOCK_BYTES}")

    segments, num_sha2_blocks = chunk_to_blocks(message, max_len // SHA2_BLOCK_BYTES, 8)
    return from_bits([b for seg in segments for b in seg]), num_sha2_blocks
