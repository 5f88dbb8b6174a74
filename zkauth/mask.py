"""
Reveal Mask
===========

[PRIVACY] Decides which bytes of `header.payload` the circuit discloses.

Invariants:
- One bit per byte of `header.payload` (the signature is never masked)
- Header and the separating '.' are always revealed (1)
- Payload bytes are revealed only inside requested claim spans
- Extension up to circuit capacity is all ones: SHA-256 padding and
  zero capacity are public, not secret
"""

import logging
from typing import Iterable, List, Sequence, Union

from .errors import CapacityExceeded, MalformedInput
from .token import Token, locate_claim

logger = logging.getLogger(__name__)


def build_mask(token: Union[Token, str], reveal_fields: Iterable[str]) -> List[int]:
    """
    Build the reveal mask for `header.payload`.

    Args:
        token: Token or its string form (signed or unsigned)
        reveal_fields: Top-level claim names to reveal. Repeated or
                       overlapping names are legal (union of spans).

    Returns:
        List of 0/1, len == len(header) + 1 + len(payload)

    Raises:
        ClaimNotFound: a requested claim is absent
    """
    if isinstance(token, str):
        token = Token.parse(token)

    payload_mask = [0] * len(token.payload)
    for name in reveal_fields:
        span = locate_claim(token.payload, name)
        for i in range(span.index_b64, span.index_b64 + span.length_b64):
            payload_mask[i] = 1
        logger.debug(
            f"[MASK] Reveal {name!r}: chars [{span.index_b64}, "
            f"{span.index_b64 + span.length_b64})"
        )

    return [1] * (len(token.header) + 1) + payload_mask


def extend_mask(mask: Sequence[int], max_len: int) -> List[int]:
    """Right-extend with revealed bits up to the circuit capacity."""
    if len(mask) > max_len:
        raise CapacityExceeded(f"Mask length {len(mask)} exceeds capacity {max_len}")
    return list(mask) + [1] * (max_len - len(mask))


def apply_mask(
    content: Union[bytes, Sequence[int]],
    mask: Sequence[int],
    mask_value: int,
) -> List[int]:
    """
    Replace every hidden byte by the sentinel.

    Returns:
        Masked content as a list of byte values (the public circuit output)
    """
    if len(content) != len(mask):
        raise MalformedInput(
            f"Content length {len(content)} != mask length {len(mask)}"
        )
    return [c if m else mask_value for c, m in zip(content, mask)]
