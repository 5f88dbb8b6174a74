"""
Bit Packing
===========

Conversion between byte buffers and the bit/chunk representations the
circuit's input wires expect.

- to_bits / from_bits: MSB-first per byte, exact inverses
- chunk: fixed-width grouping, never pads the final group
- pack: regroup fixed-width values into wide field elements

[NUMPY] Bit conversion goes through np.unpackbits / np.packbits
(big bit order), which is MSB-first by definition.
"""

from typing import List, Sequence, Tuple, TypeVar, Union

import numpy as np

from .errors import MalformedInput

T = TypeVar("T")

BytesLike = Union[bytes, bytearray, memoryview, Sequence[int]]


def _as_uint8(data: BytesLike) -> "np.ndarray":
    try:
        raw = bytes(data)
    except (TypeError, ValueError) as e:
        raise MalformedInput(f"Not a byte sequence: {e}")
    return np.frombuffer(raw, dtype=np.uint8)


def to_bits(data: BytesLike) -> List[int]:
    """Bytes -> list of bits, most significant bit of each byte first."""
    return np.unpackbits(_as_uint8(data)).tolist()


def from_bits(bits: Sequence[int]) -> bytes:
    """
    Exact inverse of to_bits.

    Raises:
        MalformedInput: len(bits) is not a multiple of 8, or an element
                        is not 0/1
    """
    if len(bits) % 8 != 0:
        raise MalformedInput(f"Bit length {len(bits)} is not a multiple of 8")
    arr = np.asarray(bits)
    if arr.size and arr.dtype.kind not in "iub":
        raise MalformedInput(f"Bit sequence has non-integer elements ({arr.dtype})")
    if arr.size and not np.isin(arr, (0, 1)).all():
        raise MalformedInput("Bit sequence contains values other than 0 and 1")
    return np.packbits(arr.astype(np.uint8)).tobytes()


def chunk(sequence: Sequence[T], width: int) -> List[List[T]]:
    """
    Split sequence into consecutive groups of `width` elements.

    The final group is returned as is if it is short. Padding it is the
    caller's job, so a truncation bug is never hidden here.
    """
    if width <= 0:
        raise MalformedInput(f"Chunk width must be positive, got {width}")
    return [list(sequence[i:i + width]) for i in range(0, len(sequence), width)]


def bits_to_int(bits: Sequence[int]) -> int:
    """Big-endian bit list -> integer."""
    value = 0
    for b in bits:
        value = (value << 1) | (b & 1)
    return value


def pack(values: Sequence[int], in_width: int, out_width: int) -> List[int]:
    """
    Pack `in_width`-bit values into `out_width`-bit integers.

    [ALGORITHM]
    1. Concatenate big-endian in_width-bit representations
    2. Zero-pad the tail to a multiple of out_width (the only implicit
       padding in this module)
    3. Read every out_width group as a big-endian integer

    Raises:
        MalformedInput: a value does not fit into in_width bits
    """
    if in_width <= 0 or out_width <= 0:
        raise MalformedInput("Pack widths must be positive")

    limit = 1 << in_width
    bits: List[int] = []
    for v in values:
        if v < 0 or v >= limit:
            raise MalformedInput(f"Value {v} does not fit into {in_width} bits")
        bits.extend((v >> (in_width - 1 - i)) & 1 for i in range(in_width))

    extra = (-len(bits)) % out_width
    bits.extend([0] * extra)
    return [bits_to_int(group) for group in chunk(bits, out_width)]


def split_128(value: int) -> Tuple[int, int]:
    """Split a 256-bit integer into (high 128 bits, low 128 bits)."""
    if value < 0 or value >= 1 << 256:
        raise MalformedInput("Value does not fit into 256 bits")
    return value >> 128, value & ((1 << 128) - 1)
